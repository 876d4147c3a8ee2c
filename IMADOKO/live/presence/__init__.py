from .conf import PresenceConfig
from .departure import (GUEST_LEAVE, STOP_SHARING, Beacon, DepartureNotifier, HttpBeacon,
                        ThreadedBeacon)
from .exceptions import (Conflict, NotFound, PositionUnavailable, PresenceError,
                         StoreError, StoreReadFailed, StoreWriteFailed,
                         SubscriptionDropped)
from .feed import ChangeFeed, Subscription
from .geolocation import PositionProvider, StaticPositionProvider, acquire_position
from .heartbeat import HeartbeatPublisher
from .identity import CacheTokenStorage, IdentityIssuer, MemoryTokenStorage, create_token
from .lifecycle import PAGEHIDE, PageLifecycle
from .reconciler import Reconciler
from .restorer import SessionRestorer
from .scheduler import LoopScheduler, Scheduler
from .session import GuestSession, HostSession
from .store import MemorySessionStore, SessionStore
from .types import Coord, DisplayStatus, Role, SessionUpdate, SessionView, Status
