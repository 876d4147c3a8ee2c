class PresenceError(Exception):
    """Base class for everything the presence engine raises."""


class PositionUnavailable(PresenceError):
    """Geolocation was denied, failed or did not answer in time."""


class StoreError(PresenceError):
    def __init__(self, token, message=None):
        self.token = token
        super().__init__(message or f"{self.__class__.__name__}: {token}")


class StoreWriteFailed(StoreError):
    pass


class StoreReadFailed(StoreError):
    pass


class NotFound(StoreError):
    pass


class Conflict(StoreError):
    pass


class SubscriptionDropped(PresenceError):
    def __init__(self, token):
        self.token = token
        super().__init__(f"change feed dropped for session {token}")
