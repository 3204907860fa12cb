"""
Unit tests for the debouncer.
"""
import asyncio
import logging
import pytest

from treemap.infrastructure.map_engine import MapEngineError
from treemap.utils.scheduling import Debouncer


class TestDebouncer:
    """Tests for coalescing and failure reporting."""

    def test_burst_runs_callback_once(self, manual_scheduler):
        calls = []
        debouncer = Debouncer(0.3, lambda: calls.append(manual_scheduler.time()), manual_scheduler)

        for _ in range(4):
            debouncer.trigger()
            manual_scheduler.advance(0.2)
        manual_scheduler.advance(0.3)

        assert calls == [pytest.approx(0.9)]
        assert not debouncer.pending

    def test_cancel_drops_pending_timer(self, manual_scheduler):
        calls = []
        debouncer = Debouncer(0.3, lambda: calls.append(1), manual_scheduler)

        debouncer.trigger()
        debouncer.cancel()
        manual_scheduler.advance(1.0)

        assert calls == []

    @pytest.mark.asyncio
    async def test_failed_coroutine_is_logged(self, manual_scheduler, caplog):
        async def refresh():
            raise MapEngineError("Unknown source 'trees'")

        debouncer = Debouncer(0.3, refresh, manual_scheduler)

        with caplog.at_level(logging.ERROR, logger="treemap.utils.scheduling"):
            debouncer.trigger()
            manual_scheduler.advance(0.3)
            for _ in range(3):
                await asyncio.sleep(0)

        failures = [r for r in caplog.records if r.name == "treemap.utils.scheduling"]
        assert len(failures) == 1
        assert isinstance(failures[0].exc_info[1], MapEngineError)
        await debouncer.drain()
