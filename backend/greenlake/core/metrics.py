"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# HTTP metrics (route is the path template, e.g. /api/v1/hotels/{hotel_id})
http_requests = Counter(
    'http_requests_total',
    'HTTP requests served',
    ['method', 'route', 'status_class']  # 2xx, 4xx, 5xx
)

http_latency = Histogram(
    'http_request_latency_seconds',
    'HTTP request latency',
    ['route'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Cart metrics
cart_additions = Counter(
    'cart_additions_total',
    'Add-to-cart attempts',
    ['item_type', 'result']  # added, updated, unavailable
)

# Order metrics
orders_created = Counter(
    'orders_created_total',
    'Orders persisted at checkout',
    ['order_type']
)

# Reward redemption metrics
redemptions = Counter(
    'reward_redemptions_total',
    'Reward redemption attempts',
    ['kind', 'result']  # kind: discount/amenity; result: success, rejected, burn_failed, refunded
)

tokens_burned = Counter(
    'eco_tokens_burned_total',
    'EcoTokens burned through redemptions',
    ['kind']
)

# Ledger collaborator metrics
ledger_requests = Counter(
    'ledger_requests_total',
    'Calls made to the token ledger',
    ['operation', 'result']  # result: ok, error
)

ledger_latency = Histogram(
    'ledger_request_latency_seconds',
    'Token ledger call latency',
    ['operation'],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Ingest metrics
ingest_messages = Counter(
    'ingest_messages_total',
    'Tourism dataset messages handled by the consumer',
    ['topic', 'result']  # stored, skipped, error
)

ingest_published = Counter(
    'ingest_published_total',
    'Tourism dataset messages published by the producer',
    ['topic']
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_cart_addition(item_type: str, result: str):
    """Record add-to-cart outcome. Result: added, updated, unavailable"""
    cart_additions.labels(item_type=item_type, result=result).inc()


def record_redemption(kind: str, result: str, tokens: int = 0):
    """Record a redemption outcome; burned tokens counted on success only."""
    redemptions.labels(kind=kind, result=result).inc()
    if result == "success" and tokens:
        tokens_burned.labels(kind=kind).inc(tokens)


def record_ledger_call(operation: str, ok: bool, seconds: float):
    ledger_requests.labels(operation=operation, result="ok" if ok else "error").inc()
    ledger_latency.labels(operation=operation).observe(seconds)


def record_ingest(topic: str, result: str):
    ingest_messages.labels(topic=topic, result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()


def record_http_request(method: str, route: str, status_code: int, seconds: float):
    http_requests.labels(method=method, route=route, status_class=f"{status_code // 100}xx").inc()
    http_latency.labels(route=route).observe(seconds)
