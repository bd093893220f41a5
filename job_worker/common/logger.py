import os
import logging
import json

# Structured fields the worker attaches through ``extra``; emitted as-is in JSON logs
JOB_FIELDS = ('message_id', 'num_jobs', 'job_duration', 'stale_for')


def setup_logging(level=None):
    """
    Set up logging for the worker and the publisher.

    Inside a cluster (or with LOG_FORMAT=json) every line is a JSON object
    tagged with the pod name, so the log of one replica can be told apart
    from the others while the deployment scales.

    Args:
        level: Optional log level override (default: uses LOG_LEVEL env var or INFO)
    """
    if level is None:
        level = os.environ.get('LOG_LEVEL', 'INFO').upper()

    numeric_level = getattr(logging, level, logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s [%(levelname)s] %(name)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_format = os.environ.get('LOG_FORMAT', 'text').lower()
    if log_format == 'json' or os.environ.get('KUBERNETES_SERVICE_HOST') is not None:
        formatter = JsonFormatter(pod_name=os.environ.get('HOSTNAME'))
        for handler in logging.getLogger().handlers:
            handler.setFormatter(formatter)

    # Client libraries log every pull and retry at INFO
    for noisy in ('google', 'grpc', 'boto3', 'botocore', 'urllib3'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.debug("Logging initialized")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line, in the shape Cloud Logging parses.

    Job fields passed via ``extra`` (message id, numJobs value, ...) become
    top-level keys so they can be filtered on.
    """

    def __init__(self, pod_name: str = None, datefmt: str = None):
        super().__init__(datefmt=datefmt)
        self._pod_name = pod_name

    def format(self, record):
        log_record = {
            'timestamp': self.formatTime(record, self.datefmt),
            'severity': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'logging.googleapis.com/sourceLocation': {
                'file': record.pathname,
                'line': record.lineno,
                'function': record.funcName
            }
        }
        if self._pod_name:
            log_record['pod'] = self._pod_name

        for field in JOB_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)
