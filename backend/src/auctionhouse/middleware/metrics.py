"""Prometheus metrics for HTTP traffic and the bid ledger."""
import time
from typing import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


# =============================================================================
# Metric definitions
# =============================================================================

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_requests_active",
    "Number of active HTTP requests",
)

# Outcome label is the error code ("bid_too_low", "unavailable", ...) or "accepted"
BID_SUBMISSIONS = Counter(
    "bid_submissions_total",
    "Bid submissions by outcome",
    ["outcome"],
)

BID_CONFLICTS = Counter(
    "bid_conflicts_total",
    "Compare-and-set conflicts detected while accepting bids",
)

BID_LATENCY = Histogram(
    "bid_latency_seconds",
    "Bid ledger processing latency in seconds",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

OTP_SENT = Counter(
    "otp_codes_sent_total",
    "Phone verification codes dispatched",
)


# =============================================================================
# Metrics Middleware
# =============================================================================

class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus metrics for all HTTP requests."""

    # Path prefixes collapsed into one label value to keep cardinality bounded
    ENDPOINT_PATTERNS = {
        "/api/v1/bids": "/api/v1/bids",
        "/api/v1/items": "/api/v1/items",
        "/api/v1/auctions": "/api/v1/auctions",
        "/api/v1/auth/phone": "/api/v1/auth/phone",
        "/api/v1/auth": "/api/v1/auth",
        "/ws": "/ws",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            ACTIVE_REQUESTS.dec()
            latency = time.perf_counter() - start_time
            endpoint = self._normalize_endpoint(request.url.path)

            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status=status_code,
            ).inc()
            REQUEST_LATENCY.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(latency)

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce metric cardinality."""
        for pattern, normalized in self.ENDPOINT_PATTERNS.items():
            if path.startswith(pattern):
                return normalized

        if path in ("/health", "/metrics"):
            return path

        return "/other"


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics scrape endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


# =============================================================================
# Helpers for recording domain metrics
# =============================================================================

def record_bid_outcome(outcome: str, duration: float) -> None:
    """Record the result and latency of one bid submission."""
    BID_SUBMISSIONS.labels(outcome=outcome).inc()
    BID_LATENCY.observe(duration)


def record_bid_conflict() -> None:
    """Record a lost compare-and-set race."""
    BID_CONFLICTS.inc()


def record_otp_sent() -> None:
    """Record a dispatched verification code."""
    OTP_SENT.inc()
