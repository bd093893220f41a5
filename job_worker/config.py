import os
from typing import Mapping, Optional, NamedTuple

from job_worker.exceptions import ConfigError

SUPPORTED_QUEUE_TYPES = ('pubsub', 'sqs')


class Config(NamedTuple):
    """Configuration for the queue worker."""
    # Queue configuration
    queue_type: str
    project_id: Optional[str]
    subscription_id: Optional[str]
    sqs_queue_url: Optional[str]
    pull_timeout: float

    # Job and metric behaviour
    job_duration: float
    metric_timeout: float
    decay_interval: float

    # Exporter configuration
    metrics_port: int

    # AWS configuration (SQS backend only)
    region: str
    sso_profile: Optional[str]


def _read_number(env: Mapping[str, str], key: str, default: str, cast=int):
    raw = env.get(key) or default
    try:
        return cast(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {raw!r}")


def load_config(env: Mapping[str, str] = None) -> Config:
    """
    Load configuration from environment variables.

    Args:
        env: Optional mapping used instead of ``os.environ`` (mainly for tests)

    Returns:
        Config: Configuration object with all worker settings

    Raises:
        ConfigError: If a required value is missing or a number is malformed
    """
    env = os.environ if env is None else env

    queue_type = (env.get('QUEUE_TYPE') or 'pubsub').lower()
    if queue_type not in SUPPORTED_QUEUE_TYPES:
        supported = ', '.join(SUPPORTED_QUEUE_TYPES)
        raise ConfigError(f"Unsupported queue type: {queue_type}. Supported types: {supported}")

    project_id = env.get('PROJECT_ID')
    subscription_id = env.get('SUBSCRIPTION_ID')
    sqs_queue_url = env.get('SQS_QUEUE_URL')

    if queue_type == 'pubsub':
        if not project_id:
            raise ConfigError("PROJECT_ID environment variable must be set")
        if not subscription_id:
            raise ConfigError("SUBSCRIPTION_ID environment variable must be set")
    elif not sqs_queue_url:
        raise ConfigError("SQS_QUEUE_URL environment variable must be set")

    job_duration = _read_number(env, 'JOB_DURATION_SEC', '90')
    metric_timeout = _read_number(env, 'METRIC_TIMEOUT_SEC', '120')
    decay_interval = _read_number(env, 'DECAY_INTERVAL_SEC', '10', float)
    pull_timeout = _read_number(env, 'PULL_TIMEOUT_SEC', '30', float)
    metrics_port = _read_number(env, 'METRICS_PORT', '8080')

    if job_duration < 0 or metric_timeout < 0:
        raise ConfigError("JOB_DURATION_SEC and METRIC_TIMEOUT_SEC must not be negative")
    if decay_interval <= 0 or pull_timeout <= 0:
        raise ConfigError("DECAY_INTERVAL_SEC and PULL_TIMEOUT_SEC must be positive")

    return Config(
        queue_type=queue_type,
        project_id=project_id,
        subscription_id=subscription_id,
        sqs_queue_url=sqs_queue_url,
        pull_timeout=pull_timeout,
        job_duration=float(job_duration),
        metric_timeout=float(metric_timeout),
        decay_interval=decay_interval,
        metrics_port=metrics_port,
        region=env.get('AWS_REGION', 'us-east-1'),
        sso_profile=env.get('SSO_PROFILE')
    )
