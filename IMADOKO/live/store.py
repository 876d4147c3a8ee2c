import asyncio
import logging

from asgiref.sync import sync_to_async
from django.db import DatabaseError

from . import services
from .presence.exceptions import StoreReadFailed, StoreWriteFailed
from .presence.feed import ChangeFeed
from .presence.store import SessionStore
from .presence.types import SessionRecord

logger = logging.getLogger(__name__)

# fed by the post_save receiver in live.signals
CHANGES = ChangeFeed()


def _record(sess):
    return SessionRecord.from_payload(sess.token, sess.as_dict())


class DjangoSessionStore(SessionStore):
    """SessionStore on the LiveSession table.

    ORM calls run in a worker thread; change events are handed back to the
    subscriber's event loop.
    """

    def __init__(self, feed=None):
        self.feed = feed or CHANGES

    async def create(self, token, fields=None):
        try:
            sess = await sync_to_async(services.create_session)(token, fields)
        except DatabaseError as e:
            raise StoreWriteFailed(token, str(e)) from e
        return _record(sess)

    async def update(self, token, fields):
        try:
            await sync_to_async(services.update_session)(token, fields)
        except DatabaseError as e:
            raise StoreWriteFailed(token, str(e)) from e

    async def get(self, token):
        try:
            sess = await sync_to_async(services.get_session)(token)
        except DatabaseError as e:
            raise StoreReadFailed(token, str(e)) from e
        return _record(sess)

    def subscribe_updates(self, token, on_change, on_error=None):
        loop = asyncio.get_running_loop()

        def deliver(payload):
            loop.call_soon_threadsafe(on_change, payload)

        def dropped(exc):
            if on_error is not None:
                loop.call_soon_threadsafe(on_error, exc)

        return self.feed.subscribe(token, deliver, dropped)
