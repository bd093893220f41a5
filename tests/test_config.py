import unittest
from unittest import mock

from job_worker.config import load_config
from job_worker.exceptions import ConfigError

PUBSUB_ENV = {'PROJECT_ID': 'demo-project', 'SUBSCRIPTION_ID': 'jobs-sub'}


class TestLoadConfig(unittest.TestCase):
    """Tests for environment-sourced configuration."""

    def test_defaults(self):
        config = load_config(PUBSUB_ENV)

        self.assertEqual(config.queue_type, 'pubsub')
        self.assertEqual(config.project_id, 'demo-project')
        self.assertEqual(config.subscription_id, 'jobs-sub')
        self.assertEqual(config.job_duration, 90)
        self.assertEqual(config.metric_timeout, 120)
        self.assertEqual(config.decay_interval, 10)
        self.assertEqual(config.metrics_port, 8080)
        self.assertEqual(config.pull_timeout, 30)
        self.assertEqual(config.region, 'us-east-1')
        self.assertIsNone(config.sso_profile)

    def test_overrides(self):
        env = dict(PUBSUB_ENV, JOB_DURATION_SEC='5', METRIC_TIMEOUT_SEC='15',
                   DECAY_INTERVAL_SEC='0.5', METRICS_PORT='9100')
        config = load_config(env)

        self.assertEqual(config.job_duration, 5)
        self.assertEqual(config.metric_timeout, 15)
        self.assertEqual(config.decay_interval, 0.5)
        self.assertEqual(config.metrics_port, 9100)

    def test_missing_project_id(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config({'SUBSCRIPTION_ID': 'jobs-sub'})
        self.assertIn('PROJECT_ID', str(ctx.exception))

    def test_missing_subscription_id(self):
        with self.assertRaises(ConfigError) as ctx:
            load_config({'PROJECT_ID': 'demo-project'})
        self.assertIn('SUBSCRIPTION_ID', str(ctx.exception))

    def test_malformed_number(self):
        with self.assertRaises(ConfigError):
            load_config(dict(PUBSUB_ENV, JOB_DURATION_SEC='ninety'))

    def test_non_positive_interval(self):
        with self.assertRaises(ConfigError):
            load_config(dict(PUBSUB_ENV, DECAY_INTERVAL_SEC='0'))

    def test_sqs_requires_queue_url(self):
        with self.assertRaises(ConfigError):
            load_config({'QUEUE_TYPE': 'sqs'})

        config = load_config({'QUEUE_TYPE': 'SQS', 'SQS_QUEUE_URL': 'https://sqs/queue', 'AWS_REGION': 'eu-west-1'})
        self.assertEqual(config.queue_type, 'sqs')
        self.assertEqual(config.sqs_queue_url, 'https://sqs/queue')
        self.assertEqual(config.region, 'eu-west-1')
        self.assertIsNone(config.project_id)

    def test_unsupported_queue_type(self):
        with self.assertRaises(ConfigError):
            load_config(dict(PUBSUB_ENV, QUEUE_TYPE='kafka'))

    def test_config_error_is_value_error(self):
        self.assertTrue(issubclass(ConfigError, ValueError))

    @mock.patch.dict('os.environ', PUBSUB_ENV, clear=True)
    def test_reads_os_environ(self):
        self.assertEqual(load_config().subscription_id, 'jobs-sub')


if __name__ == '__main__':
    unittest.main()
