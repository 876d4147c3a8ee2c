from dataclasses import dataclass

from .types import Role

GUEST_PERSISTENCE_CHOICES = ("page", "reload")


@dataclass(frozen=True)
class PresenceConfig:
    host_interval: float = 15.0
    guest_interval: float = 10.0
    grace_period: float = 3.0
    position_timeout: float = 10.0
    token_length: int = 10
    # "page": guest identity dies with the page. "reload": it survives and
    # sharing resumes, like the host.
    guest_persistence: str = "page"

    def __post_init__(self):
        if self.guest_persistence not in GUEST_PERSISTENCE_CHOICES:
            raise ValueError(f"guest_persistence must be one of {GUEST_PERSISTENCE_CHOICES}")
        for name in ("host_interval", "guest_interval", "position_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        # the HTTP endpoints only accept 8..64 character tokens
        if not 8 <= self.token_length <= 64:
            raise ValueError("token_length must be between 8 and 64")
        if self.grace_period < 0:
            raise ValueError("grace_period must not be negative")

    @classmethod
    def from_settings(cls, settings=None):
        if settings is None:
            from django.conf import settings
        return cls(
            host_interval=getattr(settings, "LIVE_HOST_HEARTBEAT_SECS", cls.host_interval),
            guest_interval=getattr(settings, "LIVE_GUEST_HEARTBEAT_SECS", cls.guest_interval),
            grace_period=getattr(settings, "LIVE_STOP_GRACE_SECS", cls.grace_period),
            position_timeout=getattr(settings, "LIVE_POSITION_TIMEOUT_SECS", cls.position_timeout),
            token_length=getattr(settings, "LIVE_TOKEN_LENGTH", cls.token_length),
            guest_persistence=getattr(settings, "LIVE_GUEST_PERSISTENCE", cls.guest_persistence),
        )

    def interval_for(self, role):
        return self.host_interval if role is Role.HOST else self.guest_interval
