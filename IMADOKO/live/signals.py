from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import LiveSession
from .presence.types import WIRE_FIELDS
from .store import CHANGES


def _changed_payload(instance: LiveSession, update_fields):
    data = instance.as_dict()
    if not update_fields:
        return {k: data[k] for k in WIRE_FIELDS}
    return {k: data[k] for k in WIRE_FIELDS if k in update_fields}


@receiver(post_save, sender=LiveSession)
def live_session_changed(sender, instance: LiveSession, created, update_fields=None, **kwargs):
    """
    Publica en el feed solo los campos que se escribieron. Un insert no es un
    "update" para los suscriptores: ellos cargan el snapshot al suscribirse.
    """
    if created:
        return
    payload = _changed_payload(instance, update_fields)
    if payload:
        CHANGES.publish(instance.token, payload)
