"""CloudWatch metrics for the work a turn hands off.

Two backends are tracked: model calls (``anthropic``) and tool runs
(``tool``).  For each call we emit:

* ``Backend/RequestCount`` (dimensions: Backend, Status)
* ``Backend/ErrorCount``   (dimensions: Backend, ErrorType), failures only
* ``Backend/Latency``      (dimensions: Backend, Operation)

Data points are buffered in memory and pushed by a daemon thread every
``FLUSH_INTERVAL_SECONDS``.  With ``METRICS_ENABLED`` unset (local dev,
tests) the buffer is still filled and drained, but nothing leaves the
process.

Usage
-----
>>> from saathi.services.metrics import metrics
>>> metrics.record_success("anthropic", "chat_invoke", latency_ms=812.0)
>>> metrics.record_failure("tool", "complainService", error_type="PersistenceError")
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "DigitalSaathi"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # PutMetricData accepts at most this many points

REQUEST_COUNT = "Backend/RequestCount"
ERROR_COUNT = "Backend/ErrorCount"
LATENCY = "Backend/Latency"


def _datum(
    name: str, dimensions: dict[str, str], value: float, unit: str, ts: datetime,
) -> dict[str, Any]:
    return {
        "MetricName": name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
        "Timestamp": ts,
        "Value": value,
        "Unit": unit,
    }


class MetricsClient:
    """Buffers data points and ships them to CloudWatch in batches."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._cw_client = None

        if self._enabled:
            threading.Thread(
                target=self._flush_periodically, daemon=True, name="metrics-flush",
            ).start()
            atexit.register(self.close)
            logger.info("CloudWatch metrics enabled (namespace=%s)", NAMESPACE)

    def _cloudwatch(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Recording ────────────────────────────────────────────────────

    def record_success(self, backend: str, operation: str, latency_ms: float) -> None:
        now = datetime.now(UTC)
        self._add(
            _datum(REQUEST_COUNT, {"Backend": backend, "Status": "success"}, 1, "Count", now),
            _datum(
                LATENCY, {"Backend": backend, "Operation": operation},
                latency_ms, "Milliseconds", now,
            ),
        )

    def record_failure(
        self,
        backend: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Count a failure; latency is only recorded when it was measured."""
        now = datetime.now(UTC)
        points = [
            _datum(REQUEST_COUNT, {"Backend": backend, "Status": "failure"}, 1, "Count", now),
            _datum(ERROR_COUNT, {"Backend": backend, "ErrorType": error_type}, 1, "Count", now),
        ]
        if latency_ms > 0:
            points.append(
                _datum(
                    LATENCY, {"Backend": backend, "Operation": operation},
                    latency_ms, "Milliseconds", now,
                )
            )
        self._add(*points)
        logger.debug("Recorded %s/%s failure (%s)", backend, operation, error_type)

    # ── Shipping ─────────────────────────────────────────────────────

    def flush(self) -> int:
        """Drain the buffer; return how many data points reached CloudWatch."""
        batch = self._drain()
        if not batch or not self._enabled:
            return 0

        sent = 0
        try:
            client = self._cloudwatch()
            for start in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[start : start + MAX_BATCH_SIZE]
                client.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
        except Exception:
            logger.exception("CloudWatch push failed after %d of %d points", sent, len(batch))
        else:
            logger.info("Pushed %d metric points to CloudWatch", sent)
        return sent

    def close(self) -> None:
        """Stop the background thread and push whatever is left."""
        self._stopped.set()
        self.flush()

    def _add(self, *points: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.extend(points)

    def _drain(self) -> list[dict[str, Any]]:
        with self._lock:
            batch, self._buffer = self._buffer, []
        return batch

    def _flush_periodically(self) -> None:
        while not self._stopped.wait(FLUSH_INTERVAL_SECONDS):
            try:
                self.flush()
            except Exception:
                logger.exception("Metrics flush thread error")


metrics = MetricsClient()
