"""
Container entry point for the queue worker.
"""

# Configure logging first
from job_worker.common.logger import setup_logging

setup_logging()

import sys

from job_worker.main import main


if __name__ == '__main__':
    sys.exit(main())
