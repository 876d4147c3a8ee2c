import logging

from .exceptions import PositionUnavailable, StoreError
from .geolocation import acquire_position
from .types import Role

logger = logging.getLogger(__name__)


class HeartbeatPublisher:
    """Keeps one role's coordinate (and, for the host, liveness) fresh.

    Every publish writes only the fields the role owns. The host writes
    status=active each time, so a stray stop signal (e.g. the departure
    beacon fired by its own reload) is undone by the next beat.

    There are no retries: a failed beat is simply replaced by the next one.
    """

    def __init__(self, role, token, store, positions, scheduler, interval,
                 position_timeout=10.0, on_position=None):
        self.role = Role(role)
        self.token = token
        self.store = store
        self.positions = positions
        self.scheduler = scheduler
        self.interval = interval
        self.position_timeout = position_timeout
        self.on_position = on_position
        self._timer = None
        self._gen = 0
        self._inflight = set()

    @property
    def sharing(self):
        return self._timer is not None

    async def publish(self) -> bool:
        gen = self._gen
        try:
            coord = await acquire_position(self.positions, self.position_timeout)
        except PositionUnavailable as e:
            logger.warning("%s %s: skipping beat, position unavailable (%s)",
                           self.role.value, self.token, e)
            return False

        # stopped while waiting for the fix: this beat must not land
        if gen != self._gen:
            logger.debug("%s %s: dropping beat from before stop", self.role.value, self.token)
            return False

        if self.on_position is not None:
            try:
                self.on_position(coord)
            except Exception:
                logger.exception("position listener failed")

        try:
            await self.store.update(self.token, self.role.owned_fields(coord))
        except StoreError as e:
            logger.warning("%s %s: beat not stored (%s)", self.role.value, self.token, e)
            return False

        logger.debug("%s %s: beat at %s", self.role.value, self.token, coord)
        return True

    def start(self, immediate=True):
        if self._timer is not None:
            return
        logger.info("%s %s: heartbeat every %ss", self.role.value, self.token, self.interval)
        if immediate:
            self._spawn_beat()
        self._timer = self.scheduler.call_every(self.interval, self._tick)

    def _tick(self):
        self._spawn_beat()

    def _spawn_beat(self):
        task = self.scheduler.spawn(self.publish())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def stop(self):
        self._gen += 1
        for task in list(self._inflight):
            task.cancel()
        self._inflight.clear()
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.info("%s %s: heartbeat stopped", self.role.value, self.token)
