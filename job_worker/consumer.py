import logging
import math
import threading
import time
from typing import Callable, Mapping, NamedTuple, Optional

from job_worker.queue.message import BACKLOG_ATTRIBUTE, ReceivedMessage
from job_worker.state.metric_state import MetricState

DEFAULT_BACKLOG_HINT = 1.0

# Each burst keeps a core busy for a few milliseconds, then the worker sleeps
WORK_BURST_ITERATIONS = 100000
WORK_SLEEP_SECONDS = 0.05


class Job(NamedTuple):
    """One unit of consumed work."""
    message_id: str
    backlog_hint: float
    simulated_duration: float


def parse_backlog_hint(attributes: Mapping[str, str]) -> float:
    """
    Read the backlog size a publisher attached to a message.

    A missing or malformed value falls back to 1 ("at least one job pending").

    Args:
        attributes: Message attributes

    Returns:
        float: Non-negative backlog size
    """
    raw = (attributes or {}).get(BACKLOG_ATTRIBUTE)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        logging.warning(f"Warning: '{BACKLOG_ATTRIBUTE}' attribute missing or invalid: {raw!r}. "
                        f"Defaulting to {DEFAULT_BACKLOG_HINT:.0f}")
        return DEFAULT_BACKLOG_HINT

    if not math.isfinite(value) or value < 0:
        logging.warning(f"Warning: '{BACKLOG_ATTRIBUTE}' attribute out of range: {raw!r}. "
                        f"Defaulting to {DEFAULT_BACKLOG_HINT:.0f}")
        return DEFAULT_BACKLOG_HINT

    return value


def simulate_work(duration: float, burst_iterations: int = WORK_BURST_ITERATIONS,
                  sleep_seconds: float = WORK_SLEEP_SECONDS):
    """
    Run for ``duration`` seconds while using only a little CPU.

    Short bursts of arithmetic are interleaved with sleeps, so the job has a
    long wall-clock time but keeps CPU utilisation low. This is what makes
    CPU-based autoscaling blind to the backlog.
    """
    start_time = time.monotonic()
    while time.monotonic() - start_time < duration:
        for i in range(burst_iterations):
            math.sqrt(i)
        time.sleep(sleep_seconds)


class QueueConsumer:
    """
    Receive loop that processes exactly one message at a time.

    A message is acknowledged before the next one is fetched, so every
    instance holds at most one outstanding message and the only way to
    raise throughput is to run more instances.
    """

    def __init__(self, queue, state: MetricState, job_duration: float,
                 work: Callable[[float], None] = simulate_work):
        self._queue = queue
        self._state = state
        self._job_duration = job_duration
        self._work = work

    def to_job(self, message: ReceivedMessage) -> Job:
        return Job(
            message_id=message.message_id,
            backlog_hint=parse_backlog_hint(message.attributes),
            simulated_duration=self._job_duration
        )

    def handle_message(self, message: ReceivedMessage) -> bool:
        """
        Ingest the backlog hint, do the work and acknowledge the message.

        Errors never propagate: a message that fails during work is released
        back to the queue for redelivery, and a failed ack is only logged.

        Returns:
            bool: True if the job completed
        """
        log_fields = {'message_id': message.message_id}
        logging.info(f"Received message {message.message_id}", extra=log_fields)
        try:
            job = self.to_job(message)
            log_fields.update(num_jobs=job.backlog_hint, job_duration=job.simulated_duration)

            # Publish the pre-drain depth before this instance starts consuming capacity
            self._state.ingest(job.backlog_hint)

            logging.info(f"Starting work (simulated duration: {job.simulated_duration}s)...", extra=log_fields)
            self._work(job.simulated_duration)
            logging.info("Work finished.", extra=log_fields)
        except Exception as e:
            logging.error(f"Error processing message {message.message_id}: {e}", exc_info=True,
                          extra=log_fields)
            self._release(message)
            return False

        try:
            self._queue.ack(message)
        except Exception as e:
            logging.warning(f"Failed to acknowledge message {message.message_id}: {e}", extra=log_fields)
        return True

    def _release(self, message: ReceivedMessage):
        try:
            self._queue.release(message)
        except Exception as e:
            logging.warning(f"Failed to release message {message.message_id}: {e}")

    def run(self, stop_event: threading.Event, max_messages: Optional[int] = None) -> int:
        """
        Pull and process messages until ``stop_event`` is set.

        The stop event is checked between messages only; a job in progress
        always runs to completion and is acknowledged.

        Errors raised while pulling are not retried here; they propagate to
        the caller, since a broken queue connection ends the process.

        Args:
            stop_event: Process-wide shutdown signal
            max_messages: Optional number of messages after which to return

        Returns:
            int: Number of messages handled
        """
        handled = 0
        while not stop_event.is_set():
            if max_messages is not None and handled >= max_messages:
                break

            message = self._queue.pull()
            if message is None:
                continue

            if stop_event.is_set():
                logging.info(f"Shutdown requested, returning message {message.message_id} to the queue")
                self._release(message)
                break

            self.handle_message(message)
            handled += 1

        logging.info(f"Receive loop stopped after {handled} messages")
        return handled
