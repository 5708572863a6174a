"""
Bulk import of delimited files into existing PostgreSQL tables.

A file is COPY-loaded into a text-typed staging table and then merged into
its target with one of three modes:

- append: insert rows whose key is not in the target yet
- update: append, then overwrite rows whose staged values are newer or differ
- replace: truncate the target, then append
"""

from . import errors
from .catalog import TypeCatalog
from .engine import ReconciliationEngine
from .importer import import_from_csv
from .index import IndexAdvisor, IndexRecommendation
from .keys import CompositeKey, KeyListBuilder
from .mapping import ColumnMapping, KeySet
from .modes import MergeMode, MergeModeValidator
from .staging import CopyOptions, StagingLoader, StagingSet
from .statements import MergePlan, Operation, OperationKind, plan_merge, render_operation
from .storage import PostgresStorageEngine, StorageEngine

__version__ = "1.0.0"

__all__ = [
    "errors",
    "ColumnMapping",
    "CompositeKey",
    "CopyOptions",
    "IndexAdvisor",
    "IndexRecommendation",
    "KeyListBuilder",
    "KeySet",
    "MergeMode",
    "MergeModeValidator",
    "MergePlan",
    "Operation",
    "OperationKind",
    "PostgresStorageEngine",
    "ReconciliationEngine",
    "StagingLoader",
    "StagingSet",
    "StorageEngine",
    "TypeCatalog",
    "import_from_csv",
    "plan_merge",
    "render_operation",
]
