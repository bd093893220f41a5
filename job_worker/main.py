import logging
import signal
import sys
import threading
from typing import Optional

from job_worker.aws.wrapper import AWSWrapper
from job_worker.common.logger import setup_logging
from job_worker.config import load_config, Config
from job_worker.consumer import QueueConsumer
from job_worker.exceptions import ConfigError
from job_worker.exporter import start_metrics_server
from job_worker.queue.pubsub import PubSubQueue
from job_worker.queue.sqs import SQSQueue
from job_worker.state.decay import DecayTask
from job_worker.state.metric_state import MetricState


def create_queue_backend(config: Config):
    """
    Create the queue backend selected by the configuration.

    Args:
        config: Configuration object

    Returns:
        Queue backend exposing pull, ack, release and close

    Raises:
        ValueError: If queue type is not supported
    """
    queue_type = config.queue_type.lower()

    if queue_type == 'pubsub':
        return PubSubQueue(config.project_id, config.subscription_id, pull_timeout=config.pull_timeout)
    if queue_type == 'sqs':
        aws_wrapper = AWSWrapper(sso_profile_name=config.sso_profile, region_name=config.region)
        return SQSQueue(aws_wrapper, config.sqs_queue_url, wait_time=config.pull_timeout)

    raise ValueError(f"Unsupported queue type: {queue_type}. Supported types: pubsub, sqs")


def install_signal_handlers(stop_event: threading.Event):
    """Set ``stop_event`` on SIGTERM or SIGINT."""

    def _handle_signal(signum, _frame):
        logging.info(f"Received {signal.Signals(signum).name}; finishing current job before shutdown")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        signal.signal(sig, _handle_signal)


def run_worker(config: Config, stop_event: Optional[threading.Event] = None, queue=None) -> int:
    """
    Run the worker until ``stop_event`` is set.

    Starts the metrics endpoint and the decay task, then blocks in the
    receive loop on the calling thread.

    Args:
        config: Configuration object
        stop_event: Shutdown signal (default: a new event set by SIGTERM/SIGINT)
        queue: Optional pre-built queue backend

    Returns:
        int: Process exit status
    """
    if stop_event is None:
        stop_event = threading.Event()
        install_signal_handlers(stop_event)

    logging.info("Starting worker...")
    if config.metric_timeout <= config.job_duration:
        logging.warning(f"METRIC_TIMEOUT_SEC ({config.metric_timeout:.0f}s) is not longer than "
                        f"JOB_DURATION_SEC ({config.job_duration:.0f}s); numJobs will decay to 0 mid-job")

    state = MetricState(stale_after=config.metric_timeout)
    start_metrics_server(state, port=config.metrics_port)

    decay_task = DecayTask(state, interval=config.decay_interval)
    decay_task.start()

    if queue is None:
        try:
            queue = create_queue_backend(config)
        except Exception as e:
            logging.critical(f"Failed to create {config.queue_type} client: {e}", exc_info=True)
            decay_task.stop()
            return 1

    logging.info(f"Config: Job Duration: {config.job_duration:.0f}s, Metric Timeout: {config.metric_timeout:.0f}s")

    consumer = QueueConsumer(queue, state, config.job_duration)
    try:
        consumer.run(stop_event)
    except Exception as e:
        logging.critical(f"Queue receive error: {e}", exc_info=True)
        return 1
    finally:
        decay_task.stop(timeout=config.decay_interval)
        queue.close()

    logging.info("Worker stopped")
    return 0


def main() -> int:
    try:
        config = load_config()
    except ConfigError as e:
        logging.critical(str(e))
        return 1
    return run_worker(config)


def cli():
    """Console entry point: configure logging and exit with the worker's status."""
    setup_logging()
    sys.exit(main())


if __name__ == '__main__':
    cli()
