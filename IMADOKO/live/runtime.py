"""Builds host/guest sessions wired to this project's store and settings."""

from django.conf import settings

from .beacon import ServiceBeacon
from .presence import (CacheTokenStorage, GuestSession, HostSession, HttpBeacon,
                       IdentityIssuer, LoopScheduler, MemoryTokenStorage,
                       PresenceConfig)
from .store import DjangoSessionStore


def make_beacon():
    base_url = getattr(settings, "LIVE_BEACON_BASE_URL", "")
    if base_url:
        return HttpBeacon(base_url)
    return ServiceBeacon()


def make_issuer(config):
    cache_alias = getattr(settings, "LIVE_TOKEN_CACHE", "default")
    if config.guest_persistence == "reload":
        guest_storage = CacheTokenStorage(cache_alias)
    else:
        guest_storage = MemoryTokenStorage()
    return IdentityIssuer(host_storage=CacheTokenStorage(cache_alias),
                          guest_storage=guest_storage,
                          token_length=config.token_length)


def _common(positions, scheduler=None, store=None, beacon=None, config=None):
    config = config or PresenceConfig.from_settings()
    return dict(
        store=store or DjangoSessionStore(),
        positions=positions,
        scheduler=scheduler or LoopScheduler(),
        beacon=beacon or make_beacon(),
        issuer=make_issuer(config),
        config=config,
    )


def build_host_session(positions, **kw):
    return HostSession(**_common(positions, **kw))


def build_guest_session(share_token, positions, **kw):
    return GuestSession(share_token, **_common(positions, **kw))
