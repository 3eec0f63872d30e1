"""
Prometheus metrics: HTTP traffic plus checkout outcomes and order values.

GET /metrics is unauthenticated; keep it behind the internal network.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers each write to PROMETHEUS_MULTIPROC_DIR; /metrics merges them
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

http_requests_total = Counter(
    'http_requests_total',
    'HTTP requests by endpoint and status',
    ['method', 'endpoint', 'http_status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

pos_checkouts_total = Counter(
    'pos_checkouts_total',
    'Checkout attempts by outcome (committed, failed, ignored)',
    ['result']
)

pos_checkout_duration_seconds = Histogram(
    'pos_checkout_duration_seconds',
    'Time spent committing an order',
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
)

pos_order_total = Histogram(
    'pos_order_total',
    'Grand total of committed orders',
    buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000, 25000)
)


def record_checkout(result, started_at=None, total=None):
    """Count one checkout attempt; committed ones also record latency and value."""
    pos_checkouts_total.labels(result=result).inc()
    if started_at is not None:
        pos_checkout_duration_seconds.observe(time.perf_counter() - started_at)
    if total is not None:
        pos_order_total.observe(float(total))


def setup_metrics_instrumentation(app):
    """Time every request; called once from the app factory."""

    @app.before_request
    def start_request_timer():
        g._request_started_at = time.perf_counter()

    @app.after_request
    def record_request(response):
        started_at = g.pop('_request_started_at', None)
        if started_at is None:
            return response

        endpoint = request.endpoint or 'unknown'
        http_request_duration_seconds.labels(request.method, endpoint).observe(time.perf_counter() - started_at)
        http_requests_total.labels(request.method, endpoint, response.status_code).inc()
        return response


def _registry():
    if not MULTIPROCESS_MODE:
        return REGISTRY
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    return registry


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(_registry()), mimetype=CONTENT_TYPE_LATEST)
