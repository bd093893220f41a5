import logging
from typing import Optional

from job_worker.aws.wrapper import AWSWrapper
from job_worker.queue.message import BACKLOG_ATTRIBUTE, ReceivedMessage

# SQS caps long polling at 20 seconds
MAX_WAIT_TIME_SECONDS = 20


class SQSQueue:
    """
    Pull messages one at a time from an SQS queue.

    The queue's visibility timeout plays the role of the ack deadline and must
    be longer than the configured job duration.
    """

    def __init__(self, aws_wrapper: AWSWrapper, queue_url: str, wait_time: float = MAX_WAIT_TIME_SECONDS):
        self._queue_url = queue_url
        self._wait_time = int(min(MAX_WAIT_TIME_SECONDS, max(0, wait_time)))
        self._client = aws_wrapper.create_aws_client('sqs')
        logging.info(f"Listening to SQS queue '{queue_url}'...")

    def pull(self) -> Optional[ReceivedMessage]:
        """
        Receive at most one message, long polling for up to the wait time.

        Returns:
            ReceivedMessage or None if no message arrived in time
        """
        response = self._client.receive_message(
            QueueUrl=self._queue_url,
            MaxNumberOfMessages=1,
            WaitTimeSeconds=self._wait_time,
            MessageAttributeNames=[BACKLOG_ATTRIBUTE]
        )

        messages = response.get('Messages', [])
        if not messages:
            return None

        msg = messages[0]
        attributes = {
            name: value.get('StringValue')
            for name, value in msg.get('MessageAttributes', {}).items()
            if value.get('StringValue') is not None
        }
        return ReceivedMessage(
            message_id=msg['MessageId'],
            attributes=attributes,
            data=msg.get('Body', '').encode('utf-8'),
            receipt=msg['ReceiptHandle']
        )

    def ack(self, message: ReceivedMessage):
        self._client.delete_message(QueueUrl=self._queue_url, ReceiptHandle=message.receipt)
        logging.debug(f"Deleted message {message.message_id}")

    def release(self, message: ReceivedMessage):
        """Make an unprocessed message visible again right away."""
        self._client.change_message_visibility(
            QueueUrl=self._queue_url,
            ReceiptHandle=message.receipt,
            VisibilityTimeout=0
        )
        logging.debug(f"Released message {message.message_id}")

    def close(self):
        self._client.close()
