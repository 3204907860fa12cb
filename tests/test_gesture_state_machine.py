"""
Unit tests for the long-press gesture state machine.

Tests cover:
- Dwell timing boundaries
- Presses over existing features
- Timer cancellation on release and touch cancel
- Popup dismissal on empty-map presses
"""
import pytest

from treemap.domain.models import Coordinate
from treemap.infrastructure.map_engine import PointerEvent
from treemap.services.domain.gesture_state_machine import (
    GestureState,
    GestureStateMachine,
)


PRESS_COORDINATE = Coordinate(longitude=-71.09, latitude=42.38)


def _event(event_type: str, coordinate: Coordinate = PRESS_COORDINATE) -> PointerEvent:
    return PointerEvent(type=event_type, point=(100.0, 100.0), lnglat=coordinate)


class GestureHarness:
    """Collects everything a GestureStateMachine emits."""

    def __init__(self, scheduler, hit: bool = False):
        self.hit = hit
        self.intents = []
        self.empty_presses = 0
        self.machine = GestureStateMachine(
            hit_test=lambda point: self.hit,
            on_empty_press=self._empty_press,
            on_long_press=self.intents.append,
            dwell=1.0,
            scheduler=scheduler,
        )

    def _empty_press(self):
        self.empty_presses += 1


@pytest.fixture
def harness(manual_scheduler) -> GestureHarness:
    return GestureHarness(manual_scheduler)


# ============================================================
# Timing Tests
# ============================================================

class TestDwellTiming:
    """Tests for the long-press dwell time."""

    def test_release_before_dwell_emits_nothing(self, harness, manual_scheduler):
        harness.machine.handle(_event("mousedown"))
        manual_scheduler.advance(0.999)
        harness.machine.handle(_event("mouseup"))
        manual_scheduler.advance(5)

        assert harness.intents == []
        assert harness.machine.last_resolution == GestureState.CANCELLED
        assert harness.machine.state == GestureState.IDLE

    def test_hold_for_dwell_emits_one_intent(self, harness, manual_scheduler):
        harness.machine.handle(_event("touchstart"))
        manual_scheduler.advance(1.0)

        assert len(harness.intents) == 1
        assert harness.intents[0].coordinate == PRESS_COORDINATE
        assert harness.machine.last_resolution == GestureState.RESOLVED_LONG_PRESS
        assert harness.machine.state == GestureState.IDLE

    def test_hold_longer_still_emits_once(self, harness, manual_scheduler):
        harness.machine.handle(_event("mousedown"))
        manual_scheduler.advance(3.0)
        harness.machine.handle(_event("mouseup"))

        assert len(harness.intents) == 1

    def test_state_is_pressing_while_held(self, harness, manual_scheduler):
        harness.machine.handle(_event("mousedown"))
        manual_scheduler.advance(0.5)

        assert harness.machine.state == GestureState.PRESSING

    def test_intent_uses_press_start_coordinate(self, harness, manual_scheduler):
        harness.machine.handle(_event("touchstart"))
        manual_scheduler.advance(1.0)
        harness.machine.handle(_event("touchend", Coordinate(longitude=0, latitude=0)))

        assert harness.intents[0].coordinate == PRESS_COORDINATE


# ============================================================
# Hit Test Tests
# ============================================================

class TestPressOverFeature:
    """Tests for presses that start over a point or cluster."""

    def test_press_on_feature_never_emits(self, manual_scheduler):
        harness = GestureHarness(manual_scheduler, hit=True)

        harness.machine.handle(_event("mousedown"))
        manual_scheduler.advance(10)
        harness.machine.handle(_event("mouseup"))

        assert harness.intents == []
        assert harness.empty_presses == 0
        assert manual_scheduler.pending == []
        assert harness.machine.last_resolution == GestureState.RESOLVED_TAP

    def test_press_on_empty_map_dismisses_popup(self, harness):
        harness.machine.handle(_event("mousedown"))

        assert harness.empty_presses == 1


# ============================================================
# Cancellation Tests
# ============================================================

class TestCancellation:
    """Tests for timer cancellation."""

    @pytest.mark.parametrize("end_event", ["mouseup", "touchend", "touchcancel"])
    def test_release_cancels_timer(self, harness, manual_scheduler, end_event):
        harness.machine.handle(_event("mousedown"))
        assert len(manual_scheduler.pending) == 1

        harness.machine.handle(_event(end_event))

        assert manual_scheduler.pending == []

    def test_cancel_aborts_press(self, harness, manual_scheduler):
        harness.machine.handle(_event("touchstart"))
        harness.machine.cancel()
        manual_scheduler.advance(2)

        assert harness.intents == []
        assert harness.machine.session is None

    def test_release_without_press_is_ignored(self, harness):
        harness.machine.handle(_event("mouseup"))

        assert harness.machine.state == GestureState.IDLE
        assert harness.machine.last_resolution is None

    def test_second_press_replaces_first(self, harness, manual_scheduler):
        harness.machine.handle(_event("mousedown"))
        manual_scheduler.advance(0.6)
        harness.machine.handle(_event("mousedown"))
        manual_scheduler.advance(0.6)

        # Only the second press's timer is live, and it has not elapsed yet
        assert harness.intents == []
        assert len(manual_scheduler.pending) == 1
