"""
Staging tables for bulk loads.

A staging table is a session-local TEMPORARY table with one text column per
staged column. It is filled with COPY ... FROM STDIN and dropped once the
reconciliation that uses it is over, whatever the outcome.
"""

import logging
import re
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from psycopg2 import sql

from utils.sql_safety import split_schema_table
from utils.tracing import trace_operation

from .errors import InvalidCopyOptionsError, StorageOperationError
from .keys import relation_identifier

logger = logging.getLogger(__name__)

MAX_IDENTIFIER_LENGTH = 63
STAGING_SUFFIX = "staging"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9_]+")


@dataclass(frozen=True)
class StagingSet:
    """A staging table and its text columns, in file order."""

    name: str
    columns: tuple[str, ...]
    target: str | None = None


@dataclass(frozen=True)
class CopyOptions:
    """
    Options for COPY ... FROM STDIN.

    Attributes:
        format: "csv" or "text"
        delimiter: Single column separator character
        null: String that represents NULL values
        header: Whether the first line is a header (csv only)
        encoding: Encoding of the input file
    """

    format: str = "csv"
    delimiter: str = ","
    null: str = ""
    header: bool = True
    encoding: str = "utf-8"

    def __post_init__(self):
        if self.format not in ("csv", "text"):
            raise InvalidCopyOptionsError(f"Unsupported COPY format: {self.format!r}")
        if len(self.delimiter) != 1:
            raise InvalidCopyOptionsError(
                f"Delimiter must be a single character, got {self.delimiter!r}"
            )
        if self.header and self.format != "csv":
            raise InvalidCopyOptionsError("HEADER is only supported for csv format")


def staging_table_name(target: str, timestamp: int | None = None) -> str:
    """
    Name a staging table after its target: <table>_<epoch>_staging.

    Args:
        target: "table" or "schema.table"
        timestamp: Epoch seconds (default: now)

    Returns:
        Valid, unqualified identifier of at most 63 characters
    """
    _, table = split_schema_table(target)
    epoch = int(time.time()) if timestamp is None else timestamp
    suffix = f"_{epoch}_{STAGING_SUFFIX}"
    base = _UNSAFE_NAME_CHARS.sub("_", table.lower())
    return f"{base[:MAX_IDENTIFIER_LENGTH - len(suffix)]}{suffix}"


def build_create_staging_sql(staging: StagingSet) -> sql.Composed:
    """Render CREATE TEMPORARY TABLE with one text column per staged column."""
    columns = sql.SQL(", ").join(
        sql.SQL("{} text").format(sql.Identifier(col)) for col in staging.columns
    )
    return sql.SQL("CREATE TEMPORARY TABLE {} ({})").format(
        sql.Identifier(staging.name), columns
    )


def build_drop_staging_sql(staging: StagingSet) -> sql.Composed:
    return sql.SQL("DROP TABLE IF EXISTS {}").format(sql.Identifier(staging.name))


def build_copy_sql(staging: StagingSet, options: CopyOptions) -> sql.Composed:
    """
    Render COPY ... FROM STDIN for a staging table.

    Example:
        COPY "users_1700000000_staging" ("id", "name") FROM STDIN
        WITH (FORMAT csv, DELIMITER ',', NULL '', HEADER true, ENCODING 'utf-8')
    """
    settings = [
        sql.SQL("FORMAT {}").format(sql.SQL(options.format)),
        sql.SQL("DELIMITER {}").format(sql.Literal(options.delimiter)),
        sql.SQL("NULL {}").format(sql.Literal(options.null)),
    ]
    if options.header:
        settings.append(sql.SQL("HEADER true"))
    settings.append(sql.SQL("ENCODING {}").format(sql.Literal(options.encoding)))

    return sql.SQL("COPY {table} ({columns}) FROM STDIN WITH ({settings})").format(
        table=relation_identifier(staging.name),
        columns=sql.SQL(", ").join(sql.Identifier(col) for col in staging.columns),
        settings=sql.SQL(", ").join(settings),
    )


class StagingLoader:
    """Creates, fills and drops staging tables."""

    def __init__(self, storage, metrics=None):
        """
        Args:
            storage: StorageEngine owning the connection
            metrics: Optional ImportMetrics
        """
        self.storage = storage
        self.metrics = metrics

    @contextmanager
    def staging(self, target: str, columns: Sequence[str]) -> Iterator[StagingSet]:
        """
        Create a staging table for the duration of the block.

        The table is dropped on exit even when the block raises.

        Yields:
            StagingSet describing the created table
        """
        staging = StagingSet(
            name=staging_table_name(target), columns=tuple(columns), target=target
        )

        logger.debug(f"Creating staging table {staging.name}({', '.join(staging.columns)})")
        with self.storage.transaction():
            self.storage.create_staging(staging)

        try:
            yield staging
        finally:
            try:
                with self.storage.transaction():
                    self.storage.drop_staging(staging)
                logger.debug(f"Dropped staging table {staging.name}")
            except StorageOperationError as e:
                # The table is temporary and disappears with the session
                logger.error(f"Failed to drop staging table {staging.name}: {e}")

    def load(
        self,
        staging: StagingSet,
        source: str | Path | IO[bytes],
        options: CopyOptions | None = None,
    ) -> int:
        """
        Fill a staging table from a delimited file.

        Args:
            staging: Staging table to fill
            source: File path or binary stream
            options: COPY options (default: CopyOptions())

        Returns:
            Number of rows loaded

        Raises:
            StorageOperationError: If the file cannot be read or COPY fails
        """
        options = options or CopyOptions()

        with trace_operation("load_staging", staging=staging.name, format=options.format):
            if isinstance(source, (str, Path)):
                logger.debug(f"Loading {source} into {staging.name}")
                try:
                    stream = open(source, "rb")
                except OSError as e:
                    raise StorageOperationError(f"open {source}", e) from e
                with stream:
                    rows = self._copy(staging, stream, options)
            else:
                rows = self._copy(staging, source, options)

        logger.info(f"Loaded {rows} rows into staging table {staging.name}")
        if self.metrics is not None:
            self.metrics.record_staging_load(staging.target or staging.name, rows)
        return rows

    def _copy(self, staging: StagingSet, stream: IO[bytes], options: CopyOptions) -> int:
        with self.storage.transaction():
            return self.storage.copy_into(staging, stream, options)
