"""Prometheus metrics sink for HTTP and business observability.

One sink is created per process (see ``app.main``) and handed to the HTTP
middleware and the ``/metrics`` endpoint by reference. Tests build their own
sink so nothing leaks between them.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from time import perf_counter
from typing import Protocol

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    ProcessCollector,
    generate_latest,
)

DURATION_WINDOW_SIZE = 1000


@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    """Point-in-time view of tracked counters."""

    requests_total: int
    average_duration_ms: float
    active_users: int
    courses_total: int
    enrollments_total: int
    revenue_total: int


class MetricsSink(Protocol):
    """Contract consumed by middleware and handlers."""

    def record_request(
        self,
        duration_seconds: float,
        *,
        method: str = "GET",
        path: str = "",
        status_code: int = 200,
    ) -> None:
        """Track one handled request."""

    def snapshot(self) -> MetricsSnapshot:
        """Return current counter values."""


class PrometheusMetricsSink:
    """Metrics sink backed by a private Prometheus registry."""

    def __init__(self, namespace: str = "lvup", window_size: int = DURATION_WINDOW_SIZE) -> None:
        self.namespace = namespace
        self.window_size = window_size
        self._build()

    def _build(self) -> None:
        self.registry = CollectorRegistry()
        ProcessCollector(registry=self.registry)

        self.http_requests_total = Counter(
            f"{self.namespace}_http_requests_total",
            "Total number of HTTP requests handled by the API.",
            ["method", "path", "status_code"],
            registry=self.registry,
        )
        self.http_request_duration_seconds = Histogram(
            f"{self.namespace}_http_request_duration_seconds",
            "HTTP request latency in seconds.",
            ["method", "path"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self.registry,
        )
        self.active_users = Gauge(
            f"{self.namespace}_active_users_total",
            "Users signed in within the last 24 hours.",
            registry=self.registry,
        )
        self.courses_total = Gauge(
            f"{self.namespace}_courses_total",
            "Total number of courses.",
            registry=self.registry,
        )
        self.enrollments_total = Gauge(
            f"{self.namespace}_enrollments_total",
            "Total number of enrollments.",
            registry=self.registry,
        )
        self.revenue_total = Gauge(
            f"{self.namespace}_revenue_total",
            "Revenue of paid orders in KRW.",
            registry=self.registry,
        )

        self._requests_total = 0
        self._durations: deque[float] = deque(maxlen=self.window_size)
        self._business = {"active_users": 0, "courses_total": 0, "enrollments_total": 0, "revenue_total": 0}

    def record_request(
        self,
        duration_seconds: float,
        *,
        method: str = "GET",
        path: str = "",
        status_code: int = 200,
    ) -> None:
        method_label = method.upper()
        self.http_requests_total.labels(
            method=method_label,
            path=path,
            status_code=str(status_code),
        ).inc()
        self.http_request_duration_seconds.labels(method=method_label, path=path).observe(duration_seconds)
        self._requests_total += 1
        self._durations.append(duration_seconds * 1000)

    def update_business_metrics(
        self,
        *,
        active_users: int,
        courses_total: int,
        enrollments_total: int,
        revenue_total: int,
    ) -> None:
        self.active_users.set(active_users)
        self.courses_total.set(courses_total)
        self.enrollments_total.set(enrollments_total)
        self.revenue_total.set(revenue_total)
        self._business.update(
            active_users=active_users,
            courses_total=courses_total,
            enrollments_total=enrollments_total,
            revenue_total=revenue_total,
        )

    def snapshot(self) -> MetricsSnapshot:
        average = sum(self._durations) / len(self._durations) if self._durations else 0.0
        return MetricsSnapshot(
            requests_total=self._requests_total,
            average_duration_ms=round(average, 2),
            **self._business,
        )

    def reset(self) -> None:
        """Drop all tracked values (used in tests)."""
        self._build()

    def render(self) -> bytes:
        return generate_latest(self.registry)


def _request_path_label(request: Request) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    if route_path:
        return str(route_path)
    return request.url.path


def build_metrics_middleware(
    sink: MetricsSink,
) -> Callable[[Request, Callable[[Request], Awaitable[Response]]], Awaitable[Response]]:
    """Return HTTP middleware that reports every request to the sink."""

    async def instrument_http_request(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started_at = perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            sink.record_request(
                perf_counter() - started_at,
                method=request.method,
                path=_request_path_label(request),
                status_code=status_code,
            )

    return instrument_http_request


def build_metrics_response(sink: PrometheusMetricsSink) -> Response:
    """Return metrics payload in Prometheus text format."""
    return Response(content=sink.render(), media_type=CONTENT_TYPE_LATEST)
