"""
Row operations on LiveSession.

Every write goes through save(update_fields=...), so a writer only touches
the columns it names (host and guest never overwrite each other) and the
post_save signal knows exactly what changed.
"""

import logging

from django.db import IntegrityError, transaction

from .models import LiveSession
from .presence.exceptions import Conflict, NotFound
from .presence.store import clean_fields

logger = logging.getLogger(__name__)


def create_session(token, fields=None):
    fields = clean_fields(fields or {})
    try:
        with transaction.atomic():
            return LiveSession.objects.create(token=token, **fields)
    except IntegrityError:
        raise Conflict(token)


def get_session(token):
    try:
        return LiveSession.objects.get(token=token)
    except LiveSession.DoesNotExist:
        raise NotFound(token)


def update_session(token, fields):
    fields = clean_fields(fields)
    sess = get_session(token)
    for name, value in fields.items():
        setattr(sess, name, value)
    sess.save(update_fields=list(fields) + ["updated_at"])
    return sess


def stop_sharing(token):
    logger.info("stop-sharing for %s", token)
    return update_session(token, {"status": "stopped"})


def guest_leave(token):
    # only the guest columns, the session status is the host's business
    logger.info("guest-leave for %s", token)
    return update_session(token, {"guest_lat": None, "guest_lng": None})


def host_position(token, lat, lng):
    return update_session(token, {"host_lat": lat, "host_lng": lng, "status": "active"})


def guest_position(token, lat, lng):
    return update_session(token, {"guest_lat": lat, "guest_lng": lng})
