import json
import sys
import logging
import unittest
from unittest import mock

from job_worker.common.logger import JsonFormatter, setup_logging


class TestLogging(unittest.TestCase):
    """Tests for log formatting."""

    def _record(self, **extra):
        record = logging.LogRecord('job_worker.consumer', logging.WARNING, __file__, 42,
                                   "Set numJobs metric to %d", (9,), None, func='handle_message')
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_formatter(self):
        output = json.loads(JsonFormatter(pod_name='worker-7d9f').format(self._record()))

        self.assertEqual(output['severity'], 'WARNING')
        self.assertEqual(output['logger'], 'job_worker.consumer')
        self.assertEqual(output['message'], 'Set numJobs metric to 9')
        self.assertEqual(output['pod'], 'worker-7d9f')
        location = output['logging.googleapis.com/sourceLocation']
        self.assertEqual((location['function'], location['line']), ('handle_message', 42))

    def test_json_formatter_job_fields(self):
        """Job fields from ``extra`` become top-level keys; other attributes do not."""
        record = self._record(message_id='m1', num_jobs=9.0, job_duration=90.0, unrelated='x')

        output = json.loads(JsonFormatter().format(record))

        self.assertEqual(output['message_id'], 'm1')
        self.assertEqual(output['num_jobs'], 9.0)
        self.assertEqual(output['job_duration'], 90.0)
        self.assertNotIn('unrelated', output)
        self.assertNotIn('pod', output)
        self.assertNotIn('stale_for', output)

    def test_json_formatter_includes_exception(self):
        try:
            raise ValueError("bad attribute")
        except ValueError:
            record = self._record()
            record.exc_info = sys.exc_info()

        output = json.loads(JsonFormatter().format(record))
        self.assertIn('ValueError: bad attribute', output['exception'])

    @mock.patch.dict('os.environ', {'LOG_FORMAT': 'json', 'HOSTNAME': 'worker-abc'}, clear=True)
    def test_setup_logging_json(self):
        root_logger = logging.getLogger()
        handler = logging.StreamHandler()
        original_handlers = root_logger.handlers[:]
        root_logger.handlers = [handler]
        try:
            setup_logging('DEBUG')
            self.assertIsInstance(handler.formatter, JsonFormatter)
            output = json.loads(handler.formatter.format(self._record()))
            self.assertEqual(output['pod'], 'worker-abc')
            self.assertEqual(logging.getLogger('botocore').level, logging.WARNING)
        finally:
            root_logger.handlers = original_handlers


if __name__ == '__main__':
    unittest.main()
