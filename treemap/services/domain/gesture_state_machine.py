"""
Domain service: tell a tap from a long press on empty map.

A press that starts over an existing point or cluster is left to the detail
popup handler. A press on empty map dismisses the popup and, if held for the
full dwell time, emits a create intent at the press-start coordinate.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from treemap.domain.models import Coordinate
from treemap.infrastructure.map_engine import PointerEvent
from treemap.utils.scheduling import LoopScheduler, Scheduler, TimerHandle

logger = logging.getLogger(__name__)

PRESS_START_EVENTS = ("mousedown", "touchstart")
PRESS_END_EVENTS = ("mouseup", "touchend", "touchcancel")


class GestureState(str, Enum):
    IDLE = "idle"
    PRESSING = "pressing"
    RESOLVED_TAP = "resolved_tap"
    RESOLVED_LONG_PRESS = "resolved_long_press"
    CANCELLED = "cancelled"


@dataclass
class GestureSession:
    """State of one press, from pointer-down to release or long press."""
    started_at: float
    coordinate: Coordinate
    hit_feature: bool
    timer: Optional[TimerHandle] = None


@dataclass(frozen=True)
class CreateIntent:
    """Request to open the new tree form at a coordinate."""
    coordinate: Coordinate


class GestureStateMachine:
    """
    Single-pointer gesture recognizer.

    Args:
        hit_test: Returns True when a screen point is over a point or cluster
        on_empty_press: Called when a press starts on empty map
        on_long_press: Receives the CreateIntent once the dwell time elapses
        dwell: Seconds a press must be held to count as a long press
        scheduler: Timer source
    """

    def __init__(
        self,
        hit_test: Callable[[tuple[float, float]], bool],
        on_empty_press: Callable[[], None],
        on_long_press: Callable[[CreateIntent], None],
        dwell: float = 1.0,
        scheduler: Optional[Scheduler] = None,
    ):
        self.hit_test = hit_test
        self.on_empty_press = on_empty_press
        self.on_long_press = on_long_press
        self.dwell = dwell
        self.scheduler = scheduler or LoopScheduler()
        self.state = GestureState.IDLE
        self.last_resolution: Optional[GestureState] = None
        self.session: Optional[GestureSession] = None

    def handle(self, event: PointerEvent) -> None:
        if event.type in PRESS_START_EVENTS:
            self.press_start(event)
        elif event.type in PRESS_END_EVENTS:
            self.press_end()

    def press_start(self, event: PointerEvent) -> None:
        # Only one pointer is tracked; a stray second press replaces the first
        if self.session is not None:
            self._cancel_timer()

        hit = self.hit_test(event.point)
        self.session = GestureSession(
            started_at=self.scheduler.time(),
            coordinate=event.lnglat,
            hit_feature=hit,
        )
        self.state = GestureState.PRESSING
        if hit:
            return

        self.on_empty_press()
        self.session.timer = self.scheduler.call_later(self.dwell, self._dwell_elapsed)

    def press_end(self) -> None:
        if self.session is None:
            return
        if self.session.hit_feature:
            self._resolve(GestureState.RESOLVED_TAP)
        else:
            self._cancel_timer()
            self._resolve(GestureState.CANCELLED)

    def cancel(self) -> None:
        """Abort any press in progress without resolving it."""
        if self.session is not None:
            self._cancel_timer()
            self._resolve(GestureState.CANCELLED)

    def _cancel_timer(self) -> None:
        if self.session is not None and self.session.timer is not None:
            self.session.timer.cancel()
            self.session.timer = None

    def _dwell_elapsed(self) -> None:
        session = self.session
        if session is None:
            return
        session.timer = None
        held = self.scheduler.time() - session.started_at
        logger.debug(f"Long press after {held:.3f}s at {session.coordinate}")
        self._resolve(GestureState.RESOLVED_LONG_PRESS)
        self.on_long_press(CreateIntent(coordinate=session.coordinate))

    def _resolve(self, outcome: GestureState) -> None:
        self.last_resolution = outcome
        self.session = None
        self.state = GestureState.IDLE
