"""
Prometheus Metrics

HTTP traffic is labelled by route template (/matches/{match_id}) rather
than raw path; requests that match no route share the "unmatched" label.

Domain counters:
    jobcompass_analysis_cache_total{layer, result}
    jobcompass_ai_request_seconds
    jobcompass_listings_ingested_total{source, outcome}
    jobcompass_matches_scored_total{outcome}

Scrape with GET /metrics.
"""

import time
import logging

from fastapi import FastAPI, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger(__name__)

METRICS_PATH = "/metrics"
UNMATCHED_ROUTE = "unmatched"

HTTP_LABELS = ("method", "route", "status")

HTTP_DURATION = Histogram(
    "jobcompass_http_request_seconds",
    "Time spent serving API requests",
    HTTP_LABELS,
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0, 60.0),
)
HTTP_REQUESTS = Counter("jobcompass_http_requests_total", "API requests served", HTTP_LABELS)
HTTP_IN_FLIGHT = Gauge("jobcompass_http_requests_in_flight", "API requests currently being served", ["method"])

ANALYSIS_CACHE = Counter(
    "jobcompass_analysis_cache_total",
    "Analysis cache lookups",
    ["layer", "result"],  # layer: analysis | cover_letter, result: hit | miss
)

AI_DURATION = Histogram(
    "jobcompass_ai_request_seconds",
    "Chat completion round-trip time",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

LISTINGS_INGESTED = Counter(
    "jobcompass_listings_ingested_total",
    "Search results handled by ingestion",
    ["source", "outcome"],
)

MATCHES_SCORED = Counter("jobcompass_matches_scored_total", "Listing/profile scoring attempts", ["outcome"])


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_ROUTE)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Times every API request and counts it by route template and status."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == METRICS_PATH:
            return await call_next(request)

        method = request.method
        status = "500"
        started = time.perf_counter()
        HTTP_IN_FLIGHT.labels(method).inc()
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            HTTP_IN_FLIGHT.labels(method).dec()
            # The router stores the matched route in the scope once call_next has run
            labels = (method, _route_template(request), status)
            HTTP_DURATION.labels(*labels).observe(time.perf_counter() - started)
            HTTP_REQUESTS.labels(*labels).inc()


async def metrics_endpoint(request: Request) -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


def setup_metrics(app: FastAPI) -> None:
    app.add_middleware(PrometheusMiddleware)
    app.add_route(METRICS_PATH, metrics_endpoint, methods=["GET"])
    logger.info("Metrics exposed at %s", METRICS_PATH)


def record_cache_hit(layer: str) -> None:
    ANALYSIS_CACHE.labels(layer=layer, result="hit").inc()


def record_cache_miss(layer: str) -> None:
    ANALYSIS_CACHE.labels(layer=layer, result="miss").inc()


def record_ai_latency(duration: float) -> None:
    AI_DURATION.observe(duration)


def record_ingestion(source: str, saved: int, skipped: int, failed: int) -> None:
    for outcome, count in (("saved", saved), ("skipped", skipped), ("failed", failed)):
        if count:
            LISTINGS_INGESTED.labels(source=source, outcome=outcome).inc(count)


def record_match_scored(success: bool) -> None:
    MATCHES_SCORED.labels(outcome="scored" if success else "failed").inc()
