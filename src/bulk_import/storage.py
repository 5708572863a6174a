"""
Storage engine handles.

The reconciliation engine never talks to a connection directly; it goes
through a StorageEngine, which PostgresStorageEngine implements on top of a
psycopg2 connection. Tests substitute an in-memory implementation.
"""

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import IO, Any

import psycopg2
import psycopg2.extensions
from opentelemetry import trace
from psycopg2 import sql

from utils.tracing import trace_operation

from .errors import StorageOperationError
from .index import IndexAdvisor, IndexRecommendation
from .staging import (
    CopyOptions,
    StagingSet,
    build_copy_sql,
    build_create_staging_sql,
    build_drop_staging_sql,
)
from .statements import Operation, render_operation

logger = logging.getLogger(__name__)


class StorageEngine:
    """
    Interface the reconciliation engine depends on.

    Subclasses provide schema introspection, set-based statement execution,
    index creation, staging table management and transactional scopes.
    """

    def fetch_all(self, query: sql.Composable, params: Sequence[Any] = ()) -> list[tuple]:
        """Run a read-only query and return all rows."""
        raise NotImplementedError

    def execute(self, operation: Operation) -> int:
        """Run a mutating operation and return the number of affected rows."""
        raise NotImplementedError

    def create_index(self, recommendation: IndexRecommendation) -> None:
        raise NotImplementedError

    def create_staging(self, staging: StagingSet) -> None:
        raise NotImplementedError

    def drop_staging(self, staging: StagingSet) -> None:
        raise NotImplementedError

    def copy_into(self, staging: StagingSet, stream: IO[bytes], options: CopyOptions) -> int:
        """Bulk load a delimited stream into a staging table; return rows loaded."""
        raise NotImplementedError

    def render(self, operation: Operation) -> str:
        """Return the SQL text an operation would run."""
        raise NotImplementedError

    def transaction(self):
        """Context manager in which every statement commits together or not at all."""
        raise NotImplementedError


class PostgresStorageEngine(StorageEngine):
    """StorageEngine backed by a psycopg2 connection."""

    def __init__(self, connection: psycopg2.extensions.connection):
        """
        Initialize PostgreSQL storage engine.

        Args:
            connection: Open psycopg2 connection; autocommit is switched off so
                that transaction() scopes are atomic
        """
        self.connection = connection
        self._depth = 0

        if connection.autocommit:
            logger.debug("Disabling autocommit on storage connection")
            connection.autocommit = False

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Commit on success, roll back on any error.

        Nested scopes join the outermost one.
        """
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
        except BaseException:
            self._rollback()
            raise
        else:
            try:
                self.connection.commit()
            except psycopg2.Error as e:
                self._rollback()
                raise StorageOperationError("commit", e) from e
        finally:
            self._depth = 0

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
            logger.warning("Transaction rolled back")
        except psycopg2.Error as e:
            logger.error(f"Rollback failed: {e}")

    def _run(
        self,
        statement: sql.Composable,
        description: str,
        params: Sequence[Any] | None = None,
    ) -> int:
        try:
            with self.connection.cursor() as cursor:
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(f"Running {description}: {statement.as_string(cursor)}")
                cursor.execute(statement, params)
                return cursor.rowcount
        except psycopg2.Error as e:
            logger.error(f"Failed to run {description}: {e}")
            raise StorageOperationError(description, e) from e

    def fetch_all(self, query: sql.Composable, params: Sequence[Any] = ()) -> list[tuple]:
        with trace_operation("fetch_all", kind=trace.SpanKind.CLIENT):
            try:
                with self.connection.cursor() as cursor:
                    cursor.execute(query, tuple(params))
                    return cursor.fetchall()
            except psycopg2.Error as e:
                raise StorageOperationError("metadata query", e) from e

    def execute(self, operation: Operation) -> int:
        with trace_operation(
            "execute_operation",
            kind=trace.SpanKind.CLIENT,
            operation=operation.kind.value,
            target=operation.target,
        ):
            rows = self._run(render_operation(operation), operation.describe())
        return rows if operation.counts_rows else 0

    def create_index(self, recommendation: IndexRecommendation) -> None:
        self._run(
            IndexAdvisor.generate_index_ddl(recommendation),
            f"create index {recommendation.index_name}",
        )

    def create_staging(self, staging: StagingSet) -> None:
        self._run(build_create_staging_sql(staging), f"create staging table {staging.name}")

    def drop_staging(self, staging: StagingSet) -> None:
        self._run(build_drop_staging_sql(staging), f"drop staging table {staging.name}")

    def copy_into(self, staging: StagingSet, stream: IO[bytes], options: CopyOptions) -> int:
        description = f"copy into {staging.name}"
        try:
            with self.connection.cursor() as cursor:
                statement = build_copy_sql(staging, options).as_string(cursor)
                logger.debug(f"Running {description}: {statement}")
                cursor.copy_expert(statement, stream)
                return cursor.rowcount
        except psycopg2.Error as e:
            logger.error(f"Failed to run {description}: {e}")
            raise StorageOperationError(description, e) from e

    def render(self, operation: Operation) -> str:
        return render_operation(operation).as_string(self.connection)
