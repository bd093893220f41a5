import threading
import time
import unittest
from unittest import mock

from job_worker.state.decay import DecayTask
from job_worker.state.metric_state import MetricState


class TestDecayTask(unittest.TestCase):
    """Tests for the background decay thread."""

    def _wait_for(self, predicate, timeout=2.0):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(0.005)
        return predicate()

    def test_zeroes_stale_value(self):
        """The task zeroes a value once it goes stale."""
        now = [1000.0]
        state = MetricState(stale_after=5, clock=lambda: now[0])
        state.ingest(9)
        now[0] += 6

        task = DecayTask(state, interval=0.01)
        task.start()
        try:
            self.assertTrue(self._wait_for(lambda: state.read_current() == 0))
        finally:
            task.stop(timeout=1)

        self.assertFalse(task.running)

    def test_keeps_fresh_value(self):
        """A fresh value is left alone by the periodic checks."""
        state = MetricState(stale_after=60)
        state.ingest(4)

        task = DecayTask(state, interval=0.01)
        task.start()
        time.sleep(0.1)
        task.stop(timeout=1)

        self.assertEqual(state.read_current(), 4)

    def test_stop_wakes_immediately(self):
        """stop() does not wait for the rest of a long interval."""
        state = MetricState(stale_after=60)
        task = DecayTask(state, interval=3600)
        task.start()

        started = time.monotonic()
        task.stop(timeout=5)

        self.assertLess(time.monotonic() - started, 1)
        self.assertFalse(task.running)

    def test_stop_before_start(self):
        """Stopping a task that never started is a no-op."""
        task = DecayTask(MetricState(stale_after=60), interval=1)
        task.stop(timeout=1)
        self.assertFalse(task.running)

    def test_survives_errors(self):
        """An exception in one tick does not end the task."""
        state = mock.MagicMock(spec=MetricState)
        state.stale_after = 60
        calls = threading.Event()
        results = [RuntimeError("boom"), False, False]

        def decay_check():
            result = results.pop(0) if results else False
            if not results:
                calls.set()
            if isinstance(result, Exception):
                raise result
            return result

        state.decay_check.side_effect = decay_check

        task = DecayTask(state, interval=0.01)
        task.start()
        try:
            self.assertTrue(calls.wait(2))
        finally:
            task.stop(timeout=1)

        self.assertGreaterEqual(state.decay_check.call_count, 3)

    def test_stop_leaves_lock_free(self):
        """After stopping, the state can still be written and read."""
        state = MetricState(stale_after=0)
        task = DecayTask(state, interval=0.001)
        task.start()
        time.sleep(0.05)
        task.stop(timeout=1)

        state.ingest(3)
        self.assertEqual(state.read_current(), 3)


if __name__ == '__main__':
    unittest.main()
