from typing import Any, Dict, NamedTuple

# Message attribute carrying the queue depth at publish time
BACKLOG_ATTRIBUTE = 'numJobs'


class ReceivedMessage(NamedTuple):
    """A message pulled from a queue backend and not yet acknowledged."""
    message_id: str
    attributes: Dict[str, str]
    data: bytes
    # Backend handle used to ack or release the message (ack id, receipt handle)
    receipt: Any
