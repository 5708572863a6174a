"""
One-call CSV import: stage, load, reconcile, clean up.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import IO

import psycopg2.extensions

from utils.sql_safety import validate_schema_table

from .engine import DEFAULT_TIMESTAMP_COLUMN, ReconciliationEngine, as_column_mapping, as_key_set
from .errors import ConfigurationError
from .mapping import ColumnMapping, KeySet
from .modes import MergeMode, MergeModeValidator
from .staging import CopyOptions, StagingLoader
from .storage import PostgresStorageEngine

logger = logging.getLogger(__name__)


def import_from_csv(
    connection: psycopg2.extensions.connection,
    target: str,
    source: str | Path | IO[bytes],
    mapping: ColumnMapping | Mapping[str, str | None],
    keys: KeySet | Mapping[str, str],
    mode: MergeMode | str = MergeMode.APPEND,
    options: CopyOptions | None = None,
    timestamp_column: str | None = DEFAULT_TIMESTAMP_COLUMN,
    metrics=None,
) -> int:
    """
    Import a delimited file into an existing table.

    Args:
        connection: psycopg2 connection to the target database
        target: Target table ("table" or "schema.table")
        source: File path or binary stream
        mapping: File column -> target column; None loads a column without writing it
        keys: Identity columns (file column -> target column)
        mode: append (new rows only), update (new and changed) or replace (truncate first)
        options: COPY options (default: CopyOptions())
        timestamp_column: Target column driving change detection in update mode
        metrics: Optional ImportMetrics

    Returns:
        Number of rows inserted and updated

    Raises:
        ConfigurationError: On an invalid mode, mapping, key set or options
        SchemaLookupError: If the target table cannot be inspected
        StorageOperationError: If loading or merging fails
    """
    # Fail on caller input before creating anything
    try:
        validate_schema_table(target)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e
    mode = MergeModeValidator.validate(mode)
    mapping = as_column_mapping(mapping)
    keys = as_key_set(keys)
    keys.validate_against(mapping)

    logger.info(f"Importing {source} into {target} with mode {mode.value}")

    storage = PostgresStorageEngine(connection)
    loader = StagingLoader(storage, metrics=metrics)
    engine = ReconciliationEngine(storage, metrics=metrics, timestamp_column=timestamp_column)

    with loader.staging(target, mapping.source_columns) as staging:
        loader.load(staging, source, options)
        return engine.reconcile(target, staging, mapping, keys, mode)
