import logging
import threading
import time
from datetime import datetime
from typing import Callable, Optional, Tuple


class MetricState:
    """
    Current backlog estimate reported by the last consumed message.

    The value, the time it was ingested and the staleness timeout are guarded
    by one lock, so readers always see a value paired with the timestamp of
    the ingest that produced it, and a decay check can never zero a value
    that arrived after the check looked at the timestamp.
    """

    def __init__(self, stale_after: float, clock: Callable[[], float] = time.time):
        self._lock = threading.Lock()
        self._clock = clock
        self._stale_after = float(stale_after)
        self._current_value = 0.0
        self._last_update_time = clock()

    @property
    def stale_after(self) -> float:
        return self._stale_after

    def ingest(self, value: float) -> None:
        """
        Record a backlog value reported by a message.

        Args:
            value: Backlog size, already validated as non-negative by the consumer
        """
        value = max(0.0, float(value))
        with self._lock:
            self._current_value = value
            self._last_update_time = self._clock()
        logging.info(f"Set numJobs metric to {value:.0f}", extra={'num_jobs': value})

    def read_current(self) -> float:
        """Return the current gauge value."""
        with self._lock:
            return self._current_value

    def snapshot(self) -> Tuple[float, float]:
        """Return (value, last_update_time) as written by the same ingest."""
        with self._lock:
            return self._current_value, self._last_update_time

    def decay_check(self, now: Optional[float] = None) -> bool:
        """
        Zero the value if nothing was ingested for longer than ``stale_after``.

        The last update time is left alone, so repeated checks keep the value
        at zero until the next ingest.

        Args:
            now: Optional timestamp to compare against (default: the state's clock)

        Returns:
            bool: True if this call changed a non-zero value to zero
        """
        with self._lock:
            if now is None:
                now = self._clock()
            elapsed = now - self._last_update_time
            if elapsed <= self._stale_after:
                return False
            changed = self._current_value != 0
            self._current_value = 0.0
            last_update = self._last_update_time

        if changed:
            last_update_readable = datetime.fromtimestamp(last_update).strftime('%Y-%m-%d %H:%M:%S')
            logging.info(f"No jobs received in timeout period (last at {last_update_readable}, "
                         f"{elapsed:.1f}s ago). Setting numJobs metric to 0.",
                         extra={'num_jobs': 0, 'stale_for': elapsed})
        return changed
