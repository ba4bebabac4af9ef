"""Unit tests for IntervalTimer."""

import pytest
import threading
import time
from unittest.mock import Mock

from interview_recorder.audio.timer import IntervalTimer


@pytest.mark.unit
class TestIntervalTimer:
    """Test cases for the elapsed-time timer."""

    def test_ticks_until_cancelled(self):
        ticked = threading.Event()
        calls = []

        def callback():
            calls.append(1)
            if len(calls) >= 3:
                ticked.set()

        timer = IntervalTimer(callback, interval=0.01)
        timer.start()

        assert ticked.wait(2.0)
        assert timer.thread.daemon is True
        assert timer.thread.name == "CaptureTimerThread"
        timer.cancel()
        timer.thread.join(timeout=1.0)

        assert timer.is_running is False
        count = len(calls)
        time.sleep(0.05)
        assert len(calls) == count

    def test_start_twice_keeps_one_thread(self):
        timer = IntervalTimer(Mock(), interval=10)
        timer.start()
        first_thread = timer.thread

        timer.start()

        assert timer.thread is first_thread
        timer.cancel()

    def test_cancel_before_first_tick(self):
        callback = Mock()
        timer = IntervalTimer(callback, interval=0.05)
        timer.start()
        timer.cancel()
        timer.thread.join(timeout=1.0)

        callback.assert_not_called()

    def test_failing_callback_stops_timer(self):
        callback = Mock(side_effect=RuntimeError("boom"))
        timer = IntervalTimer(callback, interval=0.01)
        timer.start()
        timer.thread.join(timeout=1.0)

        assert callback.call_count == 1
        assert timer.is_running is False
