import logging

from prometheus_client import REGISTRY, CollectorRegistry, Gauge, generate_latest, start_http_server

from job_worker.state.metric_state import MetricState

METRIC_NAME = 'numJobs'
METRIC_HELP = 'The number of pending jobs in the queue as reported by the last message.'
DEFAULT_METRICS_PORT = 8080


def register_jobs_gauge(state: MetricState, registry: CollectorRegistry = REGISTRY) -> Gauge:
    """
    Register the ``numJobs`` gauge, evaluated from the metric state on every scrape.

    Args:
        state: Metric state shared with the consumer and the decay task
        registry: Prometheus registry to register the gauge with

    Returns:
        Gauge: The registered gauge
    """
    gauge = Gauge(METRIC_NAME, METRIC_HELP, registry=registry)
    gauge.set_function(state.read_current)
    return gauge


def start_metrics_server(state: MetricState, port: int = DEFAULT_METRICS_PORT, addr: str = '0.0.0.0',
                         registry: CollectorRegistry = REGISTRY):
    """
    Serve ``/metrics`` from a background thread.

    Scrapes only take the state lock long enough to copy the value, so they
    never hold up the consumer.
    """
    register_jobs_gauge(state, registry)
    logging.info(f"Starting metrics server on :{port}")
    return start_http_server(port, addr=addr, registry=registry)


def render_metrics(registry: CollectorRegistry = REGISTRY) -> bytes:
    return generate_latest(registry)
