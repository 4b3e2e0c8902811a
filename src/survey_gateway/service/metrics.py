"""Prometheus metrics for the Survey Gateway.

Exports:
- Request latency percentiles
- Request counts by endpoint and status
- Schema saves, result appends and bytes persisted
- Corrupt document reads
- Active requests
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


@dataclass
class MetricsCollector:
    """Collects and exposes Prometheus-style metrics.

    Lightweight implementation without prometheus_client; metrics are
    exposed as text via the /metrics endpoint.
    """

    # Counters
    request_count: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    request_errors: dict[str, int] = field(default_factory=lambda: defaultdict(int))
    schema_saves: int = 0
    result_appends: int = 0
    bytes_written: int = 0
    corrupt_reads: dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # Histograms (raw values for percentile calculation)
    request_latency: dict[str, list[float]] = field(default_factory=lambda: defaultdict(list))

    # Gauges
    active_requests: int = 0

    max_samples: int = 1000

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_seconds: float,
    ) -> None:
        """Record a completed request."""
        key = f"{method}:{path}"
        with self._lock:
            self.request_count[key] += 1

            if status_code >= 400:
                self.request_errors[f"{key}:{status_code}"] += 1

            if len(self.request_latency[key]) >= self.max_samples:
                self.request_latency[key] = self.request_latency[key][-self.max_samples // 2:]
            self.request_latency[key].append(duration_seconds)

    def record_schema_save(self, bytes_written: int) -> None:
        with self._lock:
            self.schema_saves += 1
            self.bytes_written += bytes_written

    def record_result_append(self, bytes_written: int) -> None:
        with self._lock:
            self.result_appends += 1
            self.bytes_written += bytes_written

    def record_corrupt_read(self, key: str) -> None:
        with self._lock:
            self.corrupt_reads[key] += 1

    def _percentile(self, values: list[float], p: float) -> float:
        """Calculate percentile from list of values."""
        if not values:
            return 0.0
        sorted_values = sorted(values)
        index = int(len(sorted_values) * p)
        return sorted_values[min(index, len(sorted_values) - 1)]

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        lines.append("# HELP survey_requests_total Total number of HTTP requests")
        lines.append("# TYPE survey_requests_total counter")
        for key, count in self.request_count.items():
            method, path = key.split(":", 1)
            lines.append(f'survey_requests_total{{method="{method}",path="{path}"}} {count}')

        lines.append("# HELP survey_request_errors_total Total number of HTTP errors")
        lines.append("# TYPE survey_request_errors_total counter")
        for key, count in self.request_errors.items():
            method, rest = key.split(":", 1)
            path, status = rest.rsplit(":", 1)
            lines.append(f'survey_request_errors_total{{method="{method}",path="{path}",status="{status}"}} {count}')

        lines.append("# HELP survey_request_duration_seconds Request latency percentiles")
        lines.append("# TYPE survey_request_duration_seconds summary")
        for key, values in self.request_latency.items():
            method, path = key.split(":", 1)
            for quantile in [0.5, 0.9, 0.99]:
                p_value = self._percentile(values, quantile)
                lines.append(f'survey_request_duration_seconds{{method="{method}",path="{path}",quantile="{quantile}"}} {p_value:.6f}')

        lines.append("# HELP survey_schema_saves_total Survey schema documents saved")
        lines.append("# TYPE survey_schema_saves_total counter")
        lines.append(f"survey_schema_saves_total {self.schema_saves}")

        lines.append("# HELP survey_result_appends_total Result submissions appended")
        lines.append("# TYPE survey_result_appends_total counter")
        lines.append(f"survey_result_appends_total {self.result_appends}")

        lines.append("# HELP survey_bytes_written_total Bytes persisted by document writes")
        lines.append("# TYPE survey_bytes_written_total counter")
        lines.append(f"survey_bytes_written_total {self.bytes_written}")

        lines.append("# HELP survey_corrupt_reads_total Reads that found a corrupt document")
        lines.append("# TYPE survey_corrupt_reads_total counter")
        for key, count in self.corrupt_reads.items():
            lines.append(f'survey_corrupt_reads_total{{document="{key}"}} {count}')

        lines.append("# HELP survey_active_requests Current number of in-flight requests")
        lines.append("# TYPE survey_active_requests gauge")
        lines.append(f"survey_active_requests {self.active_requests}")

        return "\n".join(lines) + "\n"


# Global metrics collector instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


UNMATCHED_PATH = "<unmatched>"


def _route_label(request: Request) -> str:
    """Label a request by its route template so unknown paths share one series."""
    route = request.scope.get("route")
    return getattr(route, "path", UNMATCHED_PATH)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect request metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        metrics = get_metrics()
        metrics.active_requests += 1

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            if request.url.path != "/metrics":
                metrics.record_request(
                    method=request.method,
                    path=_route_label(request),
                    status_code=response.status_code,
                    duration_seconds=duration,
                )

            return response
        finally:
            metrics.active_requests -= 1


def add_metrics_endpoint(app: FastAPI) -> None:
    """Add /metrics endpoint to FastAPI app."""

    @app.get("/metrics", include_in_schema=False)
    def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=get_metrics().export_prometheus(),
            media_type="text/plain; charset=utf-8",
        )


__all__ = [
    "MetricsCollector",
    "MetricsMiddleware",
    "get_metrics",
    "UNMATCHED_PATH",
    "add_metrics_endpoint",
]
