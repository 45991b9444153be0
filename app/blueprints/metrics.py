"""
Prometheus metrics: request timing for every endpoint plus store counters
(checkout outcomes and campaign deliveries), exposed at /metrics.
Keep /metrics on the monitoring network in production.
"""
from flask import Blueprint, Response, request, g
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CollectorRegistry, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess, REGISTRY
import time
import os

metrics_bp = Blueprint('metrics', __name__)

# Gunicorn workers share metrics through PROMETHEUS_MULTIPROC_DIR
if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _collect_into = None
else:
    registry = REGISTRY
    _collect_into = REGISTRY

REQUEST_LATENCY_BUCKETS = (0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

http_requests_total = Counter(
    'http_requests_total', 'HTTP requests by endpoint and status',
    ['method', 'endpoint', 'http_status'], registry=_collect_into,
)
http_request_duration_seconds = Histogram(
    'http_request_duration_seconds', 'HTTP request latency in seconds',
    ['method', 'endpoint'], registry=_collect_into, buckets=REQUEST_LATENCY_BUCKETS,
)
http_requests_in_flight = Gauge(
    'http_requests_in_flight', 'HTTP requests being handled', registry=_collect_into,
)

checkout_orders_total = Counter(
    'store_checkout_orders_total', 'Orders placed through checkout',
    ['shipping_method'], registry=_collect_into,
)
checkout_revenue_pounds_total = Counter(
    'store_checkout_revenue_pounds_total', 'Order totals charged at checkout, in GBP',
    registry=_collect_into,
)
checkout_failures_total = Counter(
    'store_checkout_failures_total', 'Checkout attempts that did not produce an order',
    ['reason'], registry=_collect_into,
)
campaign_messages_total = Counter(
    'store_campaign_messages_total', 'Campaign emails delivered', registry=_collect_into,
)


def record_checkout_result(order=None, error=None) -> None:
    """Count a checkout outcome; ``error`` is the StoreError that stopped it."""
    if order is not None:
        checkout_orders_total.labels(shipping_method=order.shipping_method).inc()
        checkout_revenue_pounds_total.inc(float(order.total_amount))
    elif error is not None:
        checkout_failures_total.labels(reason=type(error).__name__).inc()


def record_campaign_delivery(recipients: int) -> None:
    if recipients:
        campaign_messages_total.inc(recipients)


def setup_metrics_instrumentation(app):
    """Time every request; called from the app factory."""

    @app.before_request
    def start_request_timer():
        g.request_started = time.perf_counter()
        g.counted_in_flight = True
        http_requests_in_flight.inc()

    @app.after_request
    def observe_request(response):
        started = g.pop('request_started', None)
        if started is not None:
            endpoint = request.endpoint or 'unknown'
            http_request_duration_seconds.labels(request.method, endpoint).observe(time.perf_counter() - started)
            http_requests_total.labels(request.method, endpoint, response.status_code).inc()
        return response

    @app.teardown_request
    def finish_request(exc=None):
        if g.pop('counted_in_flight', False):
            http_requests_in_flight.dec()


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
