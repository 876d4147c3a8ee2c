import copy
import logging

from .exceptions import Conflict, NotFound
from .feed import ChangeFeed
from .types import WIRE_FIELDS, SessionRecord, Status

logger = logging.getLogger(__name__)


class SessionStore:
    """Remote session row: partial updates plus a best-effort change feed.

    create(token, fields)  -> SessionRecord, Conflict if the token exists
    update(token, fields)  -> None, NotFound if the token is unknown
    get(token)             -> SessionRecord, NotFound if the token is unknown
    subscribe_updates(token, on_change, on_error=None) -> Subscription
    """

    async def create(self, token, fields=None):
        raise NotImplementedError

    async def update(self, token, fields):
        raise NotImplementedError

    async def get(self, token):
        raise NotImplementedError

    def subscribe_updates(self, token, on_change, on_error=None):
        raise NotImplementedError


def clean_fields(fields):
    unknown = set(fields) - set(WIRE_FIELDS)
    if unknown:
        raise ValueError(f"unknown session fields: {sorted(unknown)}")
    out = dict(fields)
    if isinstance(out.get("status"), Status):
        out["status"] = out["status"].value
    return out


class MemorySessionStore(SessionStore):
    """Single-process store, handy for development and tests."""

    def __init__(self, feed=None):
        self.feed = feed or ChangeFeed()
        self.rows = {}
        self.writes = []

    async def create(self, token, fields=None):
        if token in self.rows:
            raise Conflict(token)
        row = {k: None for k in WIRE_FIELDS}
        row["status"] = Status.ACTIVE.value
        row.update(clean_fields(fields or {}))
        self.rows[token] = row
        self.writes.append((token, dict(row)))
        return SessionRecord.from_payload(token, row)

    async def update(self, token, fields):
        if token not in self.rows:
            raise NotFound(token)
        fields = clean_fields(fields)
        self.rows[token].update(fields)
        self.writes.append((token, dict(fields)))
        self.feed.publish(token, copy.deepcopy(fields))

    async def get(self, token):
        if token not in self.rows:
            raise NotFound(token)
        return SessionRecord.from_payload(token, self.rows[token])

    def subscribe_updates(self, token, on_change, on_error=None):
        return self.feed.subscribe(token, on_change, on_error)
