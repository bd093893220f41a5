import logging
from typing import Optional

from google.api_core import exceptions as api_exceptions
from google.cloud import pubsub_v1

from job_worker.queue.message import ReceivedMessage


class PubSubQueue:
    """
    Pull messages one at a time from a Google Cloud Pub/Sub subscription.

    Uses synchronous pull with ``max_messages=1`` instead of streaming pull so
    that no message is leased by the client library before the previous one
    has been acknowledged.
    """

    def __init__(self, project_id: str, subscription_id: str, pull_timeout: float = 30.0, subscriber=None):
        self._subscriber = subscriber or pubsub_v1.SubscriberClient()
        self._subscription_path = self._subscriber.subscription_path(project_id, subscription_id)
        self._pull_timeout = pull_timeout
        logging.info(f"Listening to subscription '{subscription_id}'...")

    @property
    def subscription_path(self) -> str:
        return self._subscription_path

    def pull(self) -> Optional[ReceivedMessage]:
        """
        Pull at most one message, waiting up to the pull timeout.

        Returns:
            ReceivedMessage or None if no message arrived in time
        """
        try:
            response = self._subscriber.pull(
                request={'subscription': self._subscription_path, 'max_messages': 1},
                timeout=self._pull_timeout
            )
        except api_exceptions.DeadlineExceeded:
            return None

        if not response.received_messages:
            return None

        received = response.received_messages[0]
        return ReceivedMessage(
            message_id=received.message.message_id,
            attributes=dict(received.message.attributes),
            data=received.message.data,
            receipt=received.ack_id
        )

    def ack(self, message: ReceivedMessage):
        self._subscriber.acknowledge(
            request={'subscription': self._subscription_path, 'ack_ids': [message.receipt]}
        )
        logging.debug(f"Acknowledged message {message.message_id}")

    def release(self, message: ReceivedMessage):
        """Nack a message so Pub/Sub redelivers it without waiting for the ack deadline."""
        self._subscriber.modify_ack_deadline(
            request={
                'subscription': self._subscription_path,
                'ack_ids': [message.receipt],
                'ack_deadline_seconds': 0
            }
        )
        logging.debug(f"Released message {message.message_id}")

    def close(self):
        self._subscriber.close()
