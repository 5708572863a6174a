"""
Utility modules for bulk imports

Provides:
- sql_safety: identifier validation
- logging: structured logging setup
- tracing: OpenTelemetry spans
- metrics: Prometheus metrics
- vault_client: HashiCorp Vault credentials
"""

__version__ = "1.0.0"
__all__ = ["sql_safety", "logging", "tracing", "metrics", "vault_client"]
