import pytest

from live.presence import IdentityIssuer, MemorySessionStore, MemoryTokenStorage, PresenceConfig

from .fakes import FakePositions, RecordingBeacon, VirtualScheduler


@pytest.fixture
def clock():
    return VirtualScheduler()


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def positions():
    return FakePositions((40.0, -73.0))


@pytest.fixture
def beacon():
    return RecordingBeacon()


@pytest.fixture
def config():
    return PresenceConfig()


@pytest.fixture
def host_storage():
    # stands in for the browser's durable storage: shared across "reloads"
    return MemoryTokenStorage()


@pytest.fixture
def make_issuer(host_storage):
    def _make(guest_storage=None):
        return IdentityIssuer(host_storage=host_storage,
                              guest_storage=guest_storage or MemoryTokenStorage())
    return _make
