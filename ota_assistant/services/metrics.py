"""CloudWatch metrics for model providers and travel data providers.

Every outbound call (a Gemini attempt, an Aviationstack lookup, ...) is
recorded as one data point set: a call count with its outcome, a latency
sample and, for failures, an error count keyed by exception type.

Points are buffered in memory and pushed with ``put_metric_data`` by a
daemon thread when ``METRICS_ENABLED=true``.  Otherwise they are only logged
at DEBUG level and never buffered.

Usage
-----
>>> from ota_assistant.services.metrics import metrics
>>> with metrics.track("llm", "gemini"):
...     backend.generate_reply(messages, options)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "OtaAssistant"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


class MetricsClient:
    """Buffered CloudWatch publisher keyed by ``Service`` and ``Operation``."""

    def __init__(self, *, enabled: bool | None = None) -> None:
        if enabled is None:
            enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._enabled = enabled
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    @property
    def pending(self) -> int:
        """Number of buffered data points."""
        with self._lock:
            return len(self._buffer)

    # ── Recording ────────────────────────────────────────────────────

    def record(
        self,
        service: str,
        operation: str,
        *,
        ok: bool,
        latency_ms: float,
        error_type: str | None = None,
    ) -> None:
        """Buffer the data points for one finished call.

        When publishing is disabled the call is only logged.
        """
        logger.debug(
            "Metric: %s/%s %s latency=%.1fms%s",
            service, operation, "ok" if ok else "error", latency_ms,
            f" error={error_type}" if error_type else "",
        )
        if not self._enabled:
            return

        now = datetime.now(UTC)
        dims = [
            {"Name": "Service", "Value": service},
            {"Name": "Operation", "Value": operation},
        ]
        points = [
            _point("Calls", dims + [{"Name": "Outcome", "Value": "ok" if ok else "error"}], 1, "Count", now),
            _point("Latency", dims, latency_ms, "Milliseconds", now),
        ]
        if not ok:
            points.append(
                _point(
                    "Errors",
                    dims + [{"Name": "ErrorType", "Value": error_type or "unknown"}],
                    1,
                    "Count",
                    now,
                )
            )
        with self._lock:
            self._buffer.extend(points)

    @contextmanager
    def track(self, service: str, operation: str) -> Iterator[None]:
        """Time the enclosed block and record it; exceptions are re-raised."""
        t0 = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.record(
                service, operation, ok=False,
                latency_ms=(time.perf_counter() - t0) * 1000,
                error_type=type(exc).__name__,
            )
            raise
        self.record(
            service, operation, ok=True,
            latency_ms=(time.perf_counter() - t0) * 1000,
        )

    # ── Publishing ───────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered points to CloudWatch.  Returns the count sent."""
        with self._lock:
            batch, self._buffer = self._buffer, []

        if not batch:
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        threading.Thread(target=_loop, daemon=True, name="metrics-flush").start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


def _point(name: str, dims: list[dict[str, str]], value: float, unit: str, ts: datetime) -> dict[str, Any]:
    return {
        "MetricName": name,
        "Dimensions": dims,
        "Timestamp": ts,
        "Value": value,
        "Unit": unit,
    }


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
