"""
Best-effort change feed for session rows.

A store publishes the fields it just committed; every subscriber for that
token gets a copy. Delivery is at-most-once per subscriber and a failing
subscriber never blocks the others or the writer.
"""

import logging
import threading
from collections import defaultdict

from .exceptions import SubscriptionDropped

logger = logging.getLogger(__name__)


class Subscription:
    def __init__(self, feed, token, on_change, on_error=None):
        self.feed = feed
        self.token = token
        self.on_change = on_change
        self.on_error = on_error
        self.active = True

    def deliver(self, payload):
        if not self.active:
            return
        try:
            self.on_change(dict(payload))
        except Exception:
            logger.exception("change handler failed for %s", self.token)

    def drop(self):
        """The transport went away. Subscribers are told once, no reconnect."""
        if not self.active:
            return
        self.active = False
        self.feed._remove(self)
        if self.on_error is not None:
            try:
                self.on_error(SubscriptionDropped(self.token))
            except Exception:
                logger.exception("drop handler failed for %s", self.token)

    def dispose(self):
        if not self.active:
            return
        self.active = False
        self.feed._remove(self)


class ChangeFeed:
    def __init__(self):
        self._subs = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, token, on_change, on_error=None) -> Subscription:
        sub = Subscription(self, token, on_change, on_error)
        with self._lock:
            self._subs[token].append(sub)
        return sub

    def publish(self, token, payload):
        with self._lock:
            subs = list(self._subs.get(token, ()))
        if subs:
            logger.debug("feed %s -> %d subscriber(s): %s", token, len(subs), payload)
        for sub in subs:
            sub.deliver(payload)

    def disconnect(self, token=None):
        """Drop every subscription (or those of one token)."""
        with self._lock:
            if token is None:
                subs = [s for group in self._subs.values() for s in group]
            else:
                subs = list(self._subs.get(token, ()))
        for sub in subs:
            sub.drop()

    def _remove(self, sub):
        with self._lock:
            group = self._subs.get(sub.token)
            if group and sub in group:
                group.remove(sub)
            if not group:
                self._subs.pop(sub.token, None)
