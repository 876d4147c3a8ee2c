import os
from io import StringIO

import pytest
from django.conf import settings
from django.core.cache import cache, caches
from django.core.management import CommandError, call_command

from live.models import LiveSession


def test_guest_needs_a_token():
    with pytest.raises(CommandError):
        call_command("share_location", "--role", "guest", "--lat", "1", "--lng", "1")


def test_rejects_impossible_position():
    with pytest.raises(CommandError):
        call_command("share_location", "--lat", "91", "--lng", "0")


@pytest.mark.django_db(transaction=True)
def test_host_shares_then_stops():
    cache.clear()
    out = StringIO()
    call_command("share_location", "--lat", "40.0", "--lng", "-73.0",
                 "--duration", "0.3", "--stop", stdout=out)

    assert "sesión nueva" in out.getvalue()
    sess = LiveSession.objects.get()
    assert sess.status == "stopped"
    assert (sess.host_lat, sess.host_lng) == (40.0, -73.0)
    assert cache.get("live:token:host") is None


@pytest.mark.skipif("CACHE_URL" in os.environ, reason="cache backend set by the environment")
def test_default_token_cache_is_on_disk():
    assert settings.CACHES["default"]["BACKEND"].endswith("FileBasedCache")


@pytest.mark.django_db(transaction=True)
def test_second_run_restores_the_session():
    cache.clear()
    first = StringIO()
    call_command("share_location", "--lat", "40.0", "--lng", "-73.0",
                 "--duration", "0.3", stdout=first)
    token = LiveSession.objects.get().token

    # what a new process would read back
    assert caches.create_connection("default").get("live:token:host") == token

    second = StringIO()
    call_command("share_location", "--lat", "40.5", "--lng", "-73.5",
                 "--duration", "0.3", "--stop", stdout=second)

    assert f"sesión restaurada {token}" in second.getvalue()
    sess = LiveSession.objects.get()
    assert sess.token == token
    assert (sess.host_lat, sess.host_lng) == (40.5, -73.5)
    assert sess.status == "stopped"
