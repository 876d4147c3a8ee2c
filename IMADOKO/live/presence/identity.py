"""
Session tokens and where each role keeps its own.

The host token has to outlive a page reload (otherwise a reload would orphan
the session), so it lives in a shared cache. The guest's identity is by
default only kept for one page instance: the share link is what a guest
comes back with, not local state.
"""

import logging
import secrets
import string

from .types import Role

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits


def create_token(length=10) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


class TokenStorage:
    def get(self, key):
        raise NotImplementedError

    def set(self, key, value):
        raise NotImplementedError

    def clear(self, key):
        raise NotImplementedError


class MemoryTokenStorage(TokenStorage):
    def __init__(self):
        self._data = {}

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def clear(self, key):
        self._data.pop(key, None)


class CacheTokenStorage(TokenStorage):
    """Token storage on a Django cache alias. Entries never expire."""

    def __init__(self, alias="default", prefix="live:token:"):
        self.alias = alias
        self.prefix = prefix

    @property
    def cache(self):
        from django.core.cache import caches
        return caches[self.alias]

    def get(self, key):
        return self.cache.get(self.prefix + key)

    def set(self, key, value):
        self.cache.set(self.prefix + key, value, timeout=None)

    def clear(self, key):
        self.cache.delete(self.prefix + key)


class IdentityIssuer:
    def __init__(self, host_storage=None, guest_storage=None, token_length=10):
        self.storages = {
            Role.HOST: host_storage or MemoryTokenStorage(),
            Role.GUEST: guest_storage or MemoryTokenStorage(),
        }
        self.token_length = token_length

    def create_token(self):
        return create_token(self.token_length)

    @staticmethod
    def _key(role, scope=None):
        return f"{role.value}:{scope}" if scope else role.value

    def persist(self, role, token, scope=None):
        logger.debug("persisting %s token %s", role.value, token)
        self.storages[role].set(self._key(role, scope), token)

    def restore(self, role, scope=None):
        return self.storages[role].get(self._key(role, scope))

    def clear(self, role, scope=None):
        self.storages[role].clear(self._key(role, scope))
