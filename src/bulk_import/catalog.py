"""
Target column type resolution.

Reads column types from information_schema so staged text values can be cast
to the target's native types for comparison and storage.
"""

import logging

from psycopg2 import sql

from utils.sql_safety import split_schema_table

from .errors import SchemaLookupError, StorageOperationError

logger = logging.getLogger(__name__)

# udt_name is the internal type name (int4, timestamp, _text, ...), which is
# always valid in a cast; types outside pg_catalog are schema-qualified.
COLUMN_TYPES_QUERY = sql.SQL(
    "SELECT column_name, udt_schema, udt_name "
    "FROM information_schema.columns "
    "WHERE table_schema = COALESCE(%s, current_schema()) AND table_name = %s "
    "ORDER BY ordinal_position"
)

BUILTIN_TYPE_SCHEMAS = ("pg_catalog", "information_schema")


class TypeCatalog:
    """Resolves and caches target column types."""

    def __init__(self, storage):
        """
        Args:
            storage: StorageEngine used to run the metadata query
        """
        self.storage = storage
        self._cache: dict[str, dict[str, str]] = {}

    def resolve(self, target: str) -> dict[str, str]:
        """
        Resolve column types for a target relation.

        Args:
            target: "table" or "schema.table"

        Returns:
            Target column name -> type name, in column order

        Raises:
            SchemaLookupError: If the relation is missing or its metadata is inaccessible
        """
        if target in self._cache:
            return self._cache[target]

        try:
            schema, table = split_schema_table(target)
        except ValueError as e:
            raise SchemaLookupError(target, str(e)) from e

        try:
            rows = self.storage.fetch_all(COLUMN_TYPES_QUERY, (schema, table))
        except StorageOperationError as e:
            raise SchemaLookupError(target, str(e.cause or e)) from e

        if not rows:
            raise SchemaLookupError(target)

        types = {}
        for column_name, udt_schema, udt_name in rows:
            if udt_schema in BUILTIN_TYPE_SCHEMAS:
                types[column_name] = udt_name
            else:
                types[column_name] = f"{udt_schema}.{udt_name}"

        logger.debug(f"Resolved {len(types)} column types for {target}: {types}")
        self._cache[target] = types
        return types

    def invalidate(self, target: str | None = None) -> None:
        """Drop cached types for one target, or all of them."""
        if target is None:
            self._cache.clear()
        else:
            self._cache.pop(target, None)
