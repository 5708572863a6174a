"""
Metrics for bulk import runs.

Tracks reconciliation runs, affected rows per operation and staging loads.
"""

import logging
import time
from typing import Optional

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    CollectorRegistry,
    REGISTRY,
    push_to_gateway,
)

logger = logging.getLogger(__name__)


class ImportMetrics:
    """
    Metrics for bulk import operations

    Tracks merge runs, affected rows and staging loads.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize import metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.import_runs_total = Counter(
            "bulk_import_runs_total",
            "Total number of merge runs",
            ["target", "mode", "status"],
            registry=self.registry,
        )

        self.import_duration_seconds = Histogram(
            "bulk_import_duration_seconds",
            "Duration of merge runs in seconds",
            ["target", "mode"],
            buckets=(0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600, 1800),
            registry=self.registry,
        )

        self.import_last_success_timestamp = Gauge(
            "bulk_import_last_success_timestamp",
            "Timestamp of the last successful merge",
            ["target"],
            registry=self.registry,
        )

        self.rows_affected_total = Counter(
            "bulk_import_rows_affected_total",
            "Rows affected by merge operations",
            ["target", "operation"],
            registry=self.registry,
        )

        self.staging_rows_loaded_total = Counter(
            "bulk_import_staging_rows_loaded_total",
            "Rows bulk loaded into staging tables",
            ["target"],
            registry=self.registry,
        )

    def record_run(
        self,
        target: str,
        mode: str,
        success: bool,
        duration: float,
        rows: Optional[dict[str, int]] = None,
    ) -> None:
        """
        Record a merge run

        Args:
            target: Target table
            mode: Merge mode
            success: Whether the run committed
            duration: Duration in seconds
            rows: Affected rows per operation kind (successful runs only)
        """
        status = "success" if success else "failed"

        self.import_runs_total.labels(target=target, mode=mode, status=status).inc()
        self.import_duration_seconds.labels(target=target, mode=mode).observe(duration)

        if success:
            self.import_last_success_timestamp.labels(target=target).set(time.time())

        for operation, count in (rows or {}).items():
            self.rows_affected_total.labels(target=target, operation=operation).inc(count)

        logger.debug(
            f"Recorded merge run: target={target}, mode={mode}, "
            f"status={status}, duration={duration:.2f}s"
        )

    def record_staging_load(self, target: str, rows: int) -> None:
        """
        Record rows loaded into a staging table

        Args:
            target: Target table the staging table feeds
            rows: Number of rows loaded
        """
        self.staging_rows_loaded_total.labels(target=target).inc(rows)

    def push(self, gateway: str, job: str = "bulk_import") -> None:
        """
        Push collected metrics to a Prometheus Pushgateway

        Batch runs end before a scraper could see them, so they push instead.

        Args:
            gateway: Pushgateway address (host:port)
            job: Job label
        """
        try:
            push_to_gateway(gateway, job=job, registry=self.registry)
            logger.info(f"Pushed metrics to {gateway}")
        except OSError as e:
            logger.warning(f"Failed to push metrics to {gateway}: {e}")
