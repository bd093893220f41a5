"""
Queue worker that exports a "jobs in queue" gauge for custom-metric autoscaling.

The worker consumes one message at a time from a managed queue, publishes the
backlog size carried on each message as the ``numJobs`` Prometheus gauge and
decays that gauge to zero once no message has arrived for a configured timeout.
"""

__version__ = "0.1.0"
