from django.db import close_old_connections

from . import services
from .presence.departure import GUEST_LEAVE, STOP_SHARING, ThreadedBeacon

HANDLERS = {
    STOP_SHARING: services.stop_sharing,
    GUEST_LEAVE: services.guest_leave,
}


class ServiceBeacon(ThreadedBeacon):
    """Beacon that runs the endpoint's service in this process.

    Same fire-and-forget contract as HttpBeacon, without the HTTP hop; used
    when the client runs next to the database.
    """

    def deliver(self, endpoint, payload):
        handler = HANDLERS[endpoint]
        try:
            handler(payload["shareId"])
        finally:
            close_old_connections()
