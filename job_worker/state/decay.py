import logging
import threading

from job_worker.state.metric_state import MetricState

DEFAULT_DECAY_INTERVAL = 10.0


class DecayTask:
    """
    Background thread that periodically zeroes a stale metric.

    Lets an external autoscaler scale the deployment down once the queue
    has stopped sending backlog updates.
    """

    def __init__(self, state: MetricState, interval: float = DEFAULT_DECAY_INTERVAL):
        self._state = state
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name='metric-decay', daemon=True)

    def start(self):
        logging.info(f"Starting metric decay check every {self._interval}s "
                     f"(timeout: {self._state.stale_after}s)")
        self._thread.start()

    def stop(self, timeout: float = None):
        self._stop_event.set()
        if self._thread.is_alive():
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def _run(self):
        # wait() returns True as soon as stop() is called
        while not self._stop_event.wait(self._interval):
            try:
                self._state.decay_check()
            except Exception as e:
                logging.error(f"Error during metric decay check: {e}", exc_info=True)
        logging.debug("Metric decay task stopped")
