"""
Departure signalling.

When a page goes away the host says "stop" and the guest says "clear my
position". Both go out through a beacon: fire and forget, never awaited, and
allowed to finish after the page (or the event loop) is gone.

A host reload also sends "stop". That is expected; the reconciler's grace
period and the restorer's immediate beat undo it.
"""

import logging
import threading

import requests

from .lifecycle import PAGEHIDE
from .types import Role

logger = logging.getLogger(__name__)

STOP_SHARING = "stop-sharing"
GUEST_LEAVE = "guest-leave"


class Beacon:
    def send(self, endpoint, payload):
        raise NotImplementedError


class ThreadedBeacon(Beacon):
    """Delivers each signal on its own non-daemon thread.

    The interpreter waits for non-daemon threads on exit, so a signal sent
    during teardown still gets its chance to land.
    """

    def send(self, endpoint, payload):
        t = threading.Thread(target=self._run, args=(endpoint, dict(payload)),
                             name=f"beacon-{endpoint}")
        t.start()
        return t

    def _run(self, endpoint, payload):
        try:
            self.deliver(endpoint, payload)
        except Exception:
            logger.exception("beacon %s failed: %s", endpoint, payload)

    def deliver(self, endpoint, payload):
        raise NotImplementedError


class HttpBeacon(ThreadedBeacon):
    def __init__(self, base_url, timeout=5.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, endpoint):
        return f"{self.base_url}/api/{endpoint}"

    def deliver(self, endpoint, payload):
        resp = self.session.post(self.url_for(endpoint), json=payload, timeout=self.timeout)
        if resp.status_code >= 400:
            logger.warning("beacon %s answered %s: %s", endpoint, resp.status_code, resp.text[:200])
        else:
            logger.debug("beacon %s delivered", endpoint)


class DepartureNotifier:
    def __init__(self, role, token, beacon):
        self.role = Role(role)
        self.token = token
        self.beacon = beacon
        self._lifecycle = None

    @property
    def endpoint(self):
        return STOP_SHARING if self.role is Role.HOST else GUEST_LEAVE

    def arm(self, lifecycle):
        if self._lifecycle is lifecycle:
            return
        self.disarm()
        lifecycle.on(PAGEHIDE, self.notify)
        self._lifecycle = lifecycle

    def disarm(self):
        if self._lifecycle is not None:
            self._lifecycle.off(PAGEHIDE, self.notify)
            self._lifecycle = None

    def notify(self):
        logger.info("%s %s leaving, sending %s", self.role.value, self.token, self.endpoint)
        try:
            self.beacon.send(self.endpoint, {"shareId": self.token})
        except Exception:
            logger.exception("could not hand %s to the beacon", self.endpoint)
