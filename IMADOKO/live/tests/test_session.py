import asyncio

import pytest

from live.presence import (Conflict, Coord, DisplayStatus, GuestSession, HostSession,
                           IdentityIssuer, MemoryTokenStorage, PresenceConfig, Role,
                           SessionView, StoreWriteFailed)

from .fakes import FakePositions, GatedPositions


def _host(store, clock, beacon, make_issuer, positions=None, **kw):
    return HostSession(store, positions or FakePositions((40.0, -73.0)), clock, beacon,
                       issuer=make_issuer(), **kw)


def _guest(token, store, clock, beacon, positions=None, issuer=None, **kw):
    return GuestSession(token, store, positions or FakePositions((40.1, -73.1)), clock,
                        beacon, issuer=issuer or IdentityIssuer(), **kw)


@pytest.mark.asyncio
async def test_start_sharing_creates_and_publishes(store, clock, beacon, make_issuer, host_storage):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()

    assert len(token) == 10 and token.isalnum()
    assert host_storage.get("host") == token
    assert host.share_path == f"/share/{token}"
    assert store.rows[token]["status"] == "active"
    assert (store.rows[token]["host_lat"], store.rows[token]["host_lng"]) == (40.0, -73.0)
    assert host.session_status is DisplayStatus.ACTIVE
    assert host.host_coord == Coord(40.0, -73.0)
    assert host.sharing


@pytest.mark.asyncio
async def test_start_sharing_retries_taken_token(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    tokens = iter(["takenTOKEN", "freshTOKEN"])
    host.issuer.create_token = lambda: next(tokens)
    await store.create("takenTOKEN")

    assert await host.start_sharing() == "freshTOKEN"


@pytest.mark.asyncio
async def test_start_sharing_gives_up_after_three_conflicts(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    host.issuer.create_token = lambda: "takenTOKEN"
    await store.create("takenTOKEN")

    with pytest.raises(Conflict):
        await host.start_sharing()
    assert host.token is None


@pytest.mark.asyncio
async def test_stop_sharing_ends_session_for_guest(store, clock, beacon, make_issuer, host_storage):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()
    guest = _guest(token, store, clock, beacon)
    await guest.open()

    await host.stop_sharing()

    assert store.rows[token]["status"] == "stopped"
    assert host_storage.get("host") is None
    assert host.session_status is DisplayStatus.PENDING
    assert not host.sharing
    assert guest.session_status is DisplayStatus.ACTIVE
    clock.advance(3.0)
    assert guest.session_status is DisplayStatus.ENDED

    # no beats after stop
    writes = len(store.writes)
    clock.advance(60.0)
    await clock.settle()
    assert len(store.writes) == writes


@pytest.mark.asyncio
async def test_stop_falls_back_to_beacon_when_write_fails(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()

    async def broken_update(token, fields):
        raise StoreWriteFailed(token)

    store.update = broken_update
    await host.stop_sharing()
    assert beacon.sent == [("stop-sharing", {"shareId": token})]


@pytest.mark.asyncio
async def test_host_reload_is_invisible_to_guest(store, clock, beacon, make_issuer, host_storage):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()
    guest = _guest(token, store, clock, beacon)
    await guest.open()
    seen = []
    guest.on_change(lambda view: seen.append(view.status))

    # page reload: departure beacon fires and lands
    host.teardown()
    assert beacon.sent == [("stop-sharing", {"shareId": token})]
    await store.update(token, {"status": "stopped"})
    assert store.rows[token]["status"] == "stopped"

    clock.advance(1.0)
    reloaded = _host(store, clock, beacon, make_issuer)
    assert await reloaded.open() == token

    assert store.rows[token]["status"] == "active"
    clock.advance(10.0)
    assert guest.session_status is DisplayStatus.ACTIVE
    assert DisplayStatus.ENDED not in seen
    assert reloaded.sharing
    assert host_storage.get("host") == token


@pytest.mark.asyncio
async def test_restore_heals_stopped_record(store, clock, beacon, make_issuer, host_storage):
    await store.create("restoreME1", {"status": "stopped", "host_lat": 1.0, "host_lng": 1.0})
    host_storage.set("host", "restoreME1")

    host = _host(store, clock, beacon, make_issuer)
    assert await host.open() == "restoreME1"

    # healed by the immediate beat, no clock movement needed
    assert clock.now == 0.0
    assert store.rows["restoreME1"]["status"] == "active"
    assert host.session_status is DisplayStatus.ACTIVE


@pytest.mark.asyncio
async def test_open_without_persisted_token_does_nothing(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    assert await host.open() is None
    assert host.session_status is DisplayStatus.PENDING
    assert store.writes == []


@pytest.mark.asyncio
async def test_host_teardown_stops_beats_but_keeps_token(store, clock, beacon, make_issuer, host_storage):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()

    host.teardown()
    host.teardown()
    writes = len(store.writes)
    clock.advance(60.0)
    await clock.settle()

    assert len(store.writes) == writes
    assert host_storage.get("host") == token
    assert beacon.sent == [("stop-sharing", {"shareId": token})]


@pytest.mark.asyncio
async def test_guest_share_and_stop(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()

    guest = _guest(token, store, clock, beacon)
    await guest.open()
    identity = await guest.start_sharing()
    await clock.settle()

    assert identity and identity != token
    assert guest.guest_coord == Coord(40.1, -73.1)
    assert host.guest_coord == Coord(40.1, -73.1)

    await guest.stop_sharing()
    assert host.guest_coord is None
    assert guest.guest_coord is None
    assert store.rows[token]["guest_lat"] is None
    # still subscribed: the host's status keeps arriving
    assert guest.reconciler.subscription is not None
    assert guest.issuer.restore(Role.GUEST, scope=token) is None


@pytest.mark.asyncio
async def test_guest_teardown_sends_leave(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()
    guest = _guest(token, store, clock, beacon)
    await guest.open()
    await guest.start_sharing()
    await clock.settle()

    guest.teardown()
    assert ("guest-leave", {"shareId": token}) in beacon.sent
    assert ("stop-sharing", {"shareId": token}) not in beacon.sent


@pytest.mark.asyncio
async def test_guest_reload_is_a_fresh_view_by_default(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()

    guest = _guest(token, store, clock, beacon)
    await guest.open()
    await guest.start_sharing()
    await clock.settle()
    guest.teardown()

    reloaded = _guest(token, store, clock, beacon)
    await reloaded.open()
    assert not reloaded.sharing
    assert reloaded.identity is None


@pytest.mark.asyncio
async def test_guest_reload_resumes_under_reload_policy(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()

    shared = MemoryTokenStorage()
    cfg = PresenceConfig(guest_persistence="reload")
    guest = _guest(token, store, clock, beacon, issuer=IdentityIssuer(guest_storage=shared), config=cfg)
    await guest.open()
    identity = await guest.start_sharing()
    await clock.settle()
    guest.teardown()
    await store.update(token, {"guest_lat": None, "guest_lng": None})

    reloaded = _guest(token, store, clock, beacon, issuer=IdentityIssuer(guest_storage=shared), config=cfg)
    await reloaded.open()
    assert reloaded.sharing
    assert reloaded.identity == identity
    assert store.rows[token]["guest_lat"] == 40.1


@pytest.mark.asyncio
async def test_guest_on_unknown_link_sees_ended(store, clock, beacon):
    guest = _guest("unknownLNK", store, clock, beacon)
    await guest.open()
    assert guest.session_status is DisplayStatus.ENDED


@pytest.mark.asyncio
async def test_end_to_end_scenario(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()

    guest = _guest(token, store, clock, beacon)
    await guest.open()
    assert guest.host_coord == Coord(40.0, -73.0)
    assert guest.session_status is DisplayStatus.ACTIVE

    # a stop lands with no active after it
    host.publisher.stop()
    await store.update(token, {"status": "stopped"})
    clock.advance(2.5)
    assert guest.session_status is DisplayStatus.ACTIVE
    clock.advance(0.5)
    assert guest.session_status is DisplayStatus.ENDED

    before = (host.session_status, host.host_coord)
    await guest.start_sharing()
    await clock.settle()

    assert host.guest_coord == Coord(40.1, -73.1)
    assert (host.session_status, host.host_coord) == before
    assert store.rows[token]["status"] == "stopped"
    assert (store.rows[token]["host_lat"], store.rows[token]["host_lng"]) == (40.0, -73.0)


@pytest.mark.asyncio
async def test_listeners_see_view_changes(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    views = []
    host.on_change(views.append)
    await host.start_sharing()
    await clock.settle()

    assert views[-1].status is DisplayStatus.ACTIVE
    assert views[-1].host_coord == Coord(40.0, -73.0)


@pytest.mark.asyncio
async def test_host_stop_wins_over_a_slow_beat(store, clock, beacon, make_issuer):
    positions = GatedPositions((40.0, -73.0))
    host = _host(store, clock, beacon, make_issuer, positions=positions)
    token = await host.start_sharing()
    await clock.settle()
    guest = _guest(token, store, clock, beacon)
    await guest.open()

    # the 15 s beat is stuck waiting for a fix when the host stops
    positions.gate.clear()
    clock.advance(15.0)
    await asyncio.sleep(0)
    await host.stop_sharing()
    assert store.rows[token]["status"] == "stopped"

    positions.gate.set()
    await clock.settle()
    clock.advance(10.0)
    await clock.settle()

    assert store.rows[token]["status"] == "stopped"
    assert store.writes[-1] == (token, {"status": "stopped"})
    assert guest.session_status is DisplayStatus.ENDED


@pytest.mark.asyncio
async def test_guest_stop_wins_over_a_slow_beat(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    token = await host.start_sharing()
    await clock.settle()

    positions = GatedPositions((40.1, -73.1))
    guest = _guest(token, store, clock, beacon, positions=positions)
    await guest.open()
    await guest.start_sharing()
    await clock.settle()

    positions.gate.clear()
    clock.advance(10.0)
    await asyncio.sleep(0)
    await guest.stop_sharing()

    positions.gate.set()
    await clock.settle()
    clock.advance(10.0)
    await clock.settle()

    assert store.rows[token]["guest_lat"] is None
    assert host.guest_coord is None
    assert guest.guest_coord is None


@pytest.mark.asyncio
async def test_teardown_forgets_the_live_view(store, clock, beacon, make_issuer):
    host = _host(store, clock, beacon, make_issuer)
    await host.start_sharing()
    await clock.settle()
    assert host.session_status is DisplayStatus.ACTIVE

    host.teardown()

    assert host.view == SessionView()
    assert host.publisher is None
    assert host.reconciler is None
    assert not host.sharing
