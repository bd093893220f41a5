"""
Batch publisher used to drive the worker in demos.

Every published message carries the size of its batch in the ``numJobs``
attribute; the body describes the job but is never read by the worker.

Usage:
    job-publisher publish <project_id> <topic_id> <subscription_id> <num_messages> <work_duration_sec>
    job-publisher purge   <project_id> <topic_id> <subscription_id>
    job-publisher auto    <project_id> <topic_id> <subscription_id>
"""
import argparse
import json
import logging
import sys
import time
from typing import Callable, List, NamedTuple, Optional

from google.api_core import exceptions as api_exceptions
from google.cloud import pubsub_v1
from google.protobuf import timestamp_pb2

from job_worker.common.logger import setup_logging
from job_worker.queue.message import BACKLOG_ATTRIBUTE


class Burst(NamedTuple):
    """One step of the scripted demo: publish a batch, then wait."""
    name: str
    num_jobs: int
    work_duration: int
    wait_after: int


AUTO_SCENARIO = [
    Burst('9 Jobs', 9, 90, 120),
    Burst('3 Jobs', 3, 90, 60),
    Burst('15 Jobs (Spike)', 15, 90, 180),
    Burst('7 Jobs', 7, 90, 180),
]


def get_or_create_topic(publisher, project_id: str, topic_id: str) -> str:
    """
    Return the topic path, creating the topic if it does not exist yet.

    Args:
        publisher: Pub/Sub publisher client
        project_id: GCP project ID
        topic_id: Topic ID

    Returns:
        str: Fully qualified topic path
    """
    topic_path = publisher.topic_path(project_id, topic_id)
    try:
        publisher.get_topic(request={'topic': topic_path})
    except api_exceptions.NotFound:
        publisher.create_topic(request={'name': topic_path})
        logging.info(f"Topic {topic_id} created.")
    return topic_path


def publish_batch(publisher, project_id: str, topic_id: str, num_jobs: int, work_duration: int) -> int:
    """
    Publish ``num_jobs`` messages, each tagged with the batch size.

    Failed publishes are logged and skipped.

    Returns:
        int: Number of messages published successfully
    """
    logging.info(f"Publishing {num_jobs} jobs to topic {topic_id}...")
    topic_path = get_or_create_topic(publisher, project_id, topic_id)
    num_jobs_str = str(num_jobs)

    futures = []
    for i in range(1, num_jobs + 1):
        data = json.dumps({'id': i, 'duration': f"{work_duration}s"}).encode('utf-8')
        futures.append(publisher.publish(topic_path, data, **{BACKLOG_ATTRIBUTE: num_jobs_str}))

    published = 0
    for i, future in enumerate(futures, start=1):
        try:
            message_id = future.result()
        except Exception as e:
            logging.warning(f"Failed to publish message {i}: {e}")
            continue
        published += 1
        logging.info(f"Published message {i}; ID: {message_id}")

    logging.info(f"Published {published} messages with '{BACKLOG_ATTRIBUTE}' attribute set to '{num_jobs_str}'.")
    return published


def purge_queue(subscriber, project_id: str, subscription_id: str):
    """
    Seek the subscription to the current time.

    This moves the subscription cursor; it does not delete anything.
    Messages that are still unacknowledged are redelivered.
    """
    logging.info(f"Purging queue for subscription {subscription_id}...")
    subscription_path = subscriber.subscription_path(project_id, subscription_id)

    now = timestamp_pb2.Timestamp()
    now.GetCurrentTime()
    subscriber.seek(request={'subscription': subscription_path, 'time': now})

    logging.info("Queue purged (all unacknowledged messages will be redelivered, then new messages will be processed).")
    logging.info("Note: This does not delete messages. It resets the subscription cursor.")
    logging.info("For a full purge, seek to a future timestamp or detach/reattach the subscription.")


def publish_done(publisher, project_id: str, topic_id: str) -> str:
    """Publish the end-of-run marker with ``numJobs`` set to 0."""
    topic_path = get_or_create_topic(publisher, project_id, topic_id)
    future = publisher.publish(topic_path, b'DONE', **{BACKLOG_ATTRIBUTE: '0'})
    return future.result()


def run_auto_mode(publisher, project_id: str, topic_id: str,
                  scenario: List[Burst] = None, sleep: Callable[[float], None] = time.sleep):
    """Publish the scripted bursts of the demo, then the DONE marker."""
    logging.info("Starting 'auto' mode...")
    scenario = AUTO_SCENARIO if scenario is None else scenario

    for number, burst in enumerate(scenario, start=1):
        logging.info(f"--- Scenario {number}: {burst.name} ---")
        publish_batch(publisher, project_id, topic_id, burst.num_jobs, burst.work_duration)
        logging.info(f"Waiting {burst.wait_after} seconds...")
        sleep(burst.wait_after)

    logging.info(f"--- Scenario {len(scenario) + 1}: Done (0 Jobs) ---")
    publish_done(publisher, project_id, topic_id)
    logging.info("Auto mode finished.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='job-publisher', description="Publish demo jobs to Pub/Sub")
    commands = parser.add_subparsers(dest='command', required=True)

    def add_target(command):
        command.add_argument('project_id')
        command.add_argument('topic_id')
        command.add_argument('subscription_id')
        return command

    publish = add_target(commands.add_parser('publish', help="Publish one batch of jobs"))
    publish.add_argument('num_messages', type=int)
    publish.add_argument('work_duration_sec', type=int)

    add_target(commands.add_parser('purge', help="Seek the subscription to now"))
    add_target(commands.add_parser('auto', help="Run the scripted burst scenario"))
    return parser


def main(argv: Optional[List[str]] = None, publisher=None, subscriber=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if args.command == 'publish':
            if args.num_messages < 0 or args.work_duration_sec < 0:
                logging.error("<num_messages> and <work_duration_sec> must not be negative")
                return 2
            publisher = publisher or pubsub_v1.PublisherClient()
            publish_batch(publisher, args.project_id, args.topic_id, args.num_messages, args.work_duration_sec)
        elif args.command == 'purge':
            subscriber = subscriber or pubsub_v1.SubscriberClient()
            purge_queue(subscriber, args.project_id, args.subscription_id)
        elif args.command == 'auto':
            publisher = publisher or pubsub_v1.PublisherClient()
            run_auto_mode(publisher, args.project_id, args.topic_id)
    except Exception as e:
        logging.error(f"Failed to run {args.command}: {e}", exc_info=True)
        return 1

    return 0


def cli():
    setup_logging()
    sys.exit(main())


if __name__ == '__main__':
    cli()
