"""
Host and guest sessions as the rendering layer sees them.

One object per page. Each exposes host_coord, guest_coord and
session_status, start_sharing()/stop_sharing(), and change listeners.
"""

import logging

from .conf import PresenceConfig
from .departure import STOP_SHARING, DepartureNotifier
from .exceptions import Conflict, StoreError
from .heartbeat import HeartbeatPublisher
from .identity import IdentityIssuer
from .lifecycle import PAGEHIDE, PageLifecycle
from .reconciler import Reconciler
from .restorer import SessionRestorer
from .types import DisplayStatus, Role, SessionUpdate, SessionView, Status

logger = logging.getLogger(__name__)

CREATE_ATTEMPTS = 3


class _BaseSession:
    role = None

    def __init__(self, store, positions, scheduler, beacon, issuer=None,
                 config=None, lifecycle=None):
        self.store = store
        self.positions = positions
        self.scheduler = scheduler
        self.beacon = beacon
        self.config = config or PresenceConfig()
        self.issuer = issuer or IdentityIssuer(token_length=self.config.token_length)
        self.restorer = SessionRestorer(self.issuer)
        self.lifecycle = lifecycle or PageLifecycle()
        self.lifecycle.on(PAGEHIDE, self._on_pagehide)

        self.reconciler = None
        self.publisher = None
        self.departure = None
        self._listeners = []

    # ---- view ----

    @property
    def view(self):
        if self.reconciler is None:
            return SessionView()
        return self.reconciler.view

    @property
    def host_coord(self):
        return self.view.host_coord

    @property
    def guest_coord(self):
        return self.view.guest_coord

    @property
    def session_status(self) -> DisplayStatus:
        return self.view.status

    @property
    def sharing(self):
        return self.publisher is not None and self.publisher.sharing

    def on_change(self, listener):
        self._listeners.append(listener)

    def _emit(self, view):
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("session listener failed")

    # ---- wiring ----

    async def _watch(self, token):
        self.reconciler = Reconciler(self.store, token, self.scheduler,
                                     grace_period=self.config.grace_period)
        self.reconciler.on_change(self._emit)
        await self.reconciler.start()

    def _unwatch(self):
        if self.reconciler is not None:
            self.reconciler.close()
            self.reconciler = None
            self._emit(self.view)

    def _make_publisher(self, token):
        return HeartbeatPublisher(
            self.role, token, self.store, self.positions, self.scheduler,
            interval=self.config.interval_for(self.role),
            position_timeout=self.config.position_timeout,
            on_position=self._local_position,
        )

    def _local_position(self, coord):
        # our own fix shows up before the store echoes it back
        if self.reconciler is None:
            return
        if self.role is Role.HOST:
            self.reconciler.apply(SessionUpdate(host_coord=coord))
        else:
            self.reconciler.apply(SessionUpdate(guest_coord=coord))

    def _arm_departure(self, token):
        self.departure = DepartureNotifier(self.role, token, self.beacon)
        self.departure.arm(self.lifecycle)

    def _halt_publishing(self):
        if self.publisher is not None:
            self.publisher.stop()
            self.publisher = None
        if self.departure is not None:
            self.departure.disarm()
            self.departure = None

    def teardown(self):
        """The page is going away (close, navigation or reload)."""
        self.lifecycle.teardown()

    def _on_pagehide(self):
        # no store writes here, the departure beacon is the only signal out
        if self.publisher is not None:
            self.publisher.stop()
            self.publisher = None
        self._unwatch()


class HostSession(_BaseSession):
    role = Role.HOST

    def __init__(self, *args, **kw):
        super().__init__(*args, **kw)
        self.token = None

    @property
    def share_path(self):
        return f"/share/{self.token}" if self.token else None

    async def open(self):
        """Page load: pick up a session this browser was already hosting."""
        publisher = await self.restorer.restore(Role.HOST, self._make_publisher)
        if publisher is None:
            return None
        self.token = publisher.token
        self.publisher = publisher
        self._arm_departure(self.token)
        await self._watch(self.token)
        return self.token

    async def start_sharing(self):
        if self.token is not None:
            return self.token

        token = None
        for _ in range(CREATE_ATTEMPTS):
            candidate = self.issuer.create_token()
            try:
                await self.store.create(candidate, {"status": Status.ACTIVE.value})
            except Conflict:
                logger.warning("token %s already taken, drawing another", candidate)
                continue
            token = candidate
            break
        if token is None:
            raise Conflict(candidate, "could not allocate a free session token")

        logger.info("host started session %s", token)
        self.token = token
        self.issuer.persist(Role.HOST, token)
        await self._watch(token)
        self._arm_departure(token)
        self.publisher = self._make_publisher(token)
        self.publisher.start()
        return token

    async def stop_sharing(self):
        if self.token is None:
            return
        token = self.token
        self._halt_publishing()
        try:
            await self.store.update(token, {"status": Status.STOPPED.value})
        except StoreError as e:
            logger.warning("stop for %s not stored (%s), falling back to beacon", token, e)
            self.beacon.send(STOP_SHARING, {"shareId": token})
        self.issuer.clear(Role.HOST)
        self.token = None
        self._unwatch()
        logger.info("host stopped session %s", token)


class GuestSession(_BaseSession):
    role = Role.GUEST

    def __init__(self, share_token, *args, **kw):
        super().__init__(*args, **kw)
        self.token = share_token
        self.identity = None

    async def open(self):
        """Page load for a share link: snapshot, subscribe, maybe resume."""
        await self._watch(self.token)
        if self.config.guest_persistence == "reload":
            publisher = await self.restorer.restore(
                Role.GUEST, lambda identity: self._make_publisher(self.token),
                scope=self.token)
            if publisher is not None:
                self.identity = self.issuer.restore(Role.GUEST, scope=self.token)
                self.publisher = publisher
                self._arm_departure(self.token)
        return self.view

    async def start_sharing(self):
        if self.sharing:
            return self.identity
        self.identity = self.issuer.create_token()
        self.issuer.persist(Role.GUEST, self.identity, scope=self.token)
        logger.info("guest %s sharing on session %s", self.identity, self.token)
        self._arm_departure(self.token)
        self.publisher = self._make_publisher(self.token)
        self.publisher.start()
        return self.identity

    async def stop_sharing(self):
        """Stop sending our position. The subscription stays: the host's final
        status still has to reach this view."""
        self._halt_publishing()
        self.issuer.clear(Role.GUEST, scope=self.token)
        self.identity = None
        try:
            await self.store.update(self.token, {"guest_lat": None, "guest_lng": None})
        except StoreError as e:
            logger.warning("guest clear for %s not stored (%s)", self.token, e)
        if self.reconciler is not None:
            self.reconciler.apply(SessionUpdate(guest_coord=None))
