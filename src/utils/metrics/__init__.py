"""
Custom metrics publishing to Prometheus

Usage:
    from utils.metrics import ImportMetrics

    metrics = ImportMetrics()
    metrics.record_run("customers", "update", success=True, duration=4.2,
                       rows={"insert_new": 10, "update_changed": 3})
    metrics.push("localhost:9091")
"""

from .imports import ImportMetrics

__all__ = [
    "ImportMetrics",
]
