"""
Pytest configuration and fixtures for bulk import tests.
Provides shared fixtures for storage doubles, metrics and SQL rendering.
"""

import os
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from tests.support import MemoryStorageEngine, render


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def set_test_env_vars() -> None:
    """Set default test environment variables if not already set."""
    defaults = {
        "POSTGRES_HOST": "localhost",
        "POSTGRES_PORT": "5432",
        "POSTGRES_DB": "warehouse_target",
        "POSTGRES_USER": "postgres",
        "POSTGRES_PASSWORD": "postgres_secure_password",
        "VAULT_ADDR": "http://localhost:8200",
        "VAULT_TOKEN": "dev-root-token",
    }

    for key, value in defaults.items():
        if key not in os.environ:
            os.environ[key] = value


@pytest.fixture
def render_sql():
    """Fixture form of render()."""
    return render


@pytest.fixture
def memory_storage() -> MemoryStorageEngine:
    """Empty in-memory storage engine."""
    return MemoryStorageEngine()


@pytest.fixture
def registry() -> CollectorRegistry:
    """Isolated Prometheus registry."""
    return CollectorRegistry()
