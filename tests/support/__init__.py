"""Test doubles and helpers shared by the test suites."""

from .memory_storage import MemoryStorageEngine, cast
from .rendering import render

__all__ = ["MemoryStorageEngine", "cast", "render"]
