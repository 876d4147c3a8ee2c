"""
Remote update reconciliation.

The store tells us about changes through a feed that may duplicate, reorder
or lose events, and the host's own page teardown sends a stop signal even
when the page is only reloading. The status filter below therefore does not
believe a stop until it has stood for a grace period with no "active" seen
in between.

The filter itself is a pure function. The grace timer is an effect the
Reconciler applies through its scheduler, which keeps the filter testable
without any clock.
"""

import enum
import logging

from .exceptions import NotFound, StoreReadFailed
from .types import DisplayStatus, SessionUpdate, SessionView, Status

logger = logging.getLogger(__name__)


class FilterState(enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    STOPPED_PENDING = "stopped_pending"
    STOPPED = "stopped"


class Signal(enum.Enum):
    SNAPSHOT_ACTIVE = "snapshot_active"
    SNAPSHOT_STOPPED = "snapshot_stopped"
    ACTIVE = "active"
    STOPPED = "stopped"
    GRACE_ELAPSED = "grace_elapsed"


class TimerAction(enum.Enum):
    NONE = "none"
    START = "start"
    CANCEL = "cancel"


DISPLAY = {
    FilterState.PENDING: DisplayStatus.PENDING,
    FilterState.ACTIVE: DisplayStatus.ACTIVE,
    # a stop we do not believe yet keeps the last live picture
    FilterState.STOPPED_PENDING: DisplayStatus.ACTIVE,
    FilterState.STOPPED: DisplayStatus.ENDED,
}


def transition(state, signal):
    """(state, signal) -> (new state, timer action)."""
    if state is FilterState.STOPPED:
        return state, TimerAction.NONE

    if state is FilterState.PENDING:
        if signal is Signal.SNAPSHOT_STOPPED:
            return FilterState.STOPPED, TimerAction.NONE
        if signal in (Signal.SNAPSHOT_ACTIVE, Signal.ACTIVE):
            return FilterState.ACTIVE, TimerAction.NONE
        if signal is Signal.STOPPED:
            return FilterState.STOPPED_PENDING, TimerAction.START
        return state, TimerAction.NONE

    # once live, a snapshot is just one more observation
    if signal is Signal.SNAPSHOT_ACTIVE:
        signal = Signal.ACTIVE
    elif signal is Signal.SNAPSHOT_STOPPED:
        signal = Signal.STOPPED

    if state is FilterState.ACTIVE:
        if signal is Signal.STOPPED:
            return FilterState.STOPPED_PENDING, TimerAction.START
        return state, TimerAction.NONE

    # STOPPED_PENDING
    if signal is Signal.ACTIVE:
        return FilterState.ACTIVE, TimerAction.CANCEL
    if signal is Signal.GRACE_ELAPSED:
        return FilterState.STOPPED, TimerAction.NONE
    return state, TimerAction.NONE


class Reconciler:
    def __init__(self, store, token, scheduler, grace_period=3.0):
        self.store = store
        self.token = token
        self.scheduler = scheduler
        self.grace_period = grace_period
        self.state = FilterState.PENDING
        self.host_coord = None
        self.guest_coord = None
        self.subscription = None
        self.dropped = None
        self._timer = None
        self._timer_gen = 0
        self._listeners = []
        self._last_view = self.view

    @property
    def view(self):
        return SessionView(host_coord=self.host_coord,
                           guest_coord=self.guest_coord,
                           status=DISPLAY[self.state])

    @property
    def status(self):
        return DISPLAY[self.state]

    def on_change(self, listener):
        self._listeners.append(listener)

    async def start(self):
        """Subscribe, then load the snapshot. Events racing the snapshot are fine:
        each field is applied on its own and the filter handles the order."""
        if self.subscription is None:
            self.subscription = self.store.subscribe_updates(
                self.token, self.handle_payload, self._handle_drop)
        try:
            record = await self.store.get(self.token)
        except (NotFound, StoreReadFailed) as e:
            # "never existed" and "expired" look the same from here
            logger.info("session %s unreadable (%s), showing it as ended", self.token, e)
            self._signal(Signal.SNAPSHOT_STOPPED)
            self._notify()
            return self.view

        self.host_coord = record.host_coord
        self.guest_coord = record.guest_coord
        self._signal(Signal.SNAPSHOT_ACTIVE if record.status is Status.ACTIVE
                     else Signal.SNAPSHOT_STOPPED)
        self._notify()
        return self.view

    def handle_payload(self, payload):
        self.apply(SessionUpdate.from_payload(payload))

    def apply(self, update):
        if update.host_coord is not None:
            self.host_coord = update.host_coord
        if update.touches_guest:
            self.guest_coord = update.guest_coord
        if update.status is Status.ACTIVE:
            self._signal(Signal.ACTIVE)
        elif update.status is Status.STOPPED:
            self._signal(Signal.STOPPED)
        self._notify()

    def close(self):
        self._cancel_timer()
        if self.subscription is not None:
            self.subscription.dispose()
            self.subscription = None

    def _signal(self, signal):
        old = self.state
        self.state, action = transition(self.state, signal)
        if self.state is not old:
            logger.info("session %s: %s -> %s (%s)",
                        self.token, old.value, self.state.value, signal.value)
        if action is TimerAction.START:
            self._start_timer()
        elif action is TimerAction.CANCEL:
            self._cancel_timer()

    def _start_timer(self):
        if self._timer is not None:
            return
        self._timer_gen += 1
        self._timer = self.scheduler.call_later(
            self.grace_period, self._grace_elapsed, self._timer_gen)

    def _cancel_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._timer_gen += 1

    def _grace_elapsed(self, gen):
        if gen != self._timer_gen:
            return
        self._timer = None
        self._signal(Signal.GRACE_ELAPSED)
        self._notify()

    def _handle_drop(self, exc):
        self.dropped = exc
        self.subscription = None
        logger.warning("%s; view for %s will not update until reopened", exc, self.token)

    def _notify(self):
        view = self.view
        if view == self._last_view:
            return
        self._last_view = view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("view listener failed")
