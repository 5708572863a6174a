"""
Supporting indexes for staging tables.

Indexing the staging table on its key (and, for timestamp-driven updates, its
timestamp) column turns the staging/target comparison into index lookups
instead of repeated scans.
"""

import hashlib
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from psycopg2 import sql

from utils.sql_safety import validate_identifier

from .keys import column_expression, relation_identifier

logger = logging.getLogger(__name__)

# PostgreSQL NAMEDATALEN - 1
MAX_IDENTIFIER_LENGTH = 63

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9_]+")


@dataclass
class IndexRecommendation:
    """
    Index to create on a staging table.

    Columns listed in casts are indexed as ("column"::type) expressions, the
    form the merge statements compare staged text in.
    """

    table_name: str
    column_names: list[str]
    index_type: str = "btree"
    reason: str = ""
    casts: dict[str, str] = field(default_factory=dict)

    @property
    def index_name(self) -> str:
        return build_index_name(self.table_name, self.column_names)


def build_index_name(table_name: str, column_names: Sequence[str]) -> str:
    """
    Derive a deterministic, valid index name.

    Staged column names come from file headers and may contain anything, so
    the name is lowercased, reduced to [a-z0-9_] and capped at 63 characters
    with an md5 suffix keeping distinct column groups distinct.
    """
    raw = "_".join(["ix", table_name, *column_names]).lower()
    name = _UNSAFE_NAME_CHARS.sub("_", raw).strip("_")
    if len(name) > MAX_IDENTIFIER_LENGTH or name != raw:
        digest = hashlib.md5("\x00".join([table_name, *column_names]).encode()).hexdigest()[:8]
        name = f"{name[:MAX_IDENTIFIER_LENGTH - 9]}_{digest}"

    validate_identifier(name)
    return name


class IndexAdvisor:
    """
    Ensures supporting indexes on staging tables.

    Remembers which column groups it has already indexed so repeated calls
    within one reconciliation issue no further DDL.
    """

    def __init__(self, storage):
        """
        Args:
            storage: StorageEngine used to create the indexes
        """
        self.storage = storage
        self._ensured: set[tuple[str, tuple[str, ...]]] = set()

    @staticmethod
    def recommend_for_merge(
        staging: str,
        key_columns: Sequence[str],
        timestamp_column: str | None = None,
        types: Mapping[str, str] | None = None,
    ) -> list[IndexRecommendation]:
        """
        Recommend staging indexes for a merge.

        Args:
            staging: Staging table name
            key_columns: Staged key columns, in key order
            timestamp_column: Staged timestamp column for timestamp-driven updates
            types: Optional staged column -> target type; typed columns are indexed cast

        Returns:
            List of index recommendations
        """
        types = types or {}

        recommendations = [
            IndexRecommendation(
                table_name=staging,
                column_names=list(key_columns),
                reason="Key lookup for anti-join and update matching",
                casts={col: types[col] for col in key_columns if col in types},
            )
        ]

        if timestamp_column:
            recommendations.append(
                IndexRecommendation(
                    table_name=staging,
                    column_names=[timestamp_column],
                    reason="Newer-timestamp comparison in update mode",
                    casts=(
                        {timestamp_column: types[timestamp_column]}
                        if timestamp_column in types
                        else {}
                    ),
                )
            )

        return recommendations

    @staticmethod
    def generate_index_ddl(recommendation: IndexRecommendation) -> sql.Composed:
        """Render CREATE INDEX IF NOT EXISTS for a recommendation."""
        if recommendation.index_type not in ("btree", "hash", "brin"):
            raise ValueError(f"Invalid index type: {recommendation.index_type}")
        if not recommendation.column_names:
            raise ValueError("Index requires at least one column")

        columns = sql.SQL(", ").join(
            sql.SQL("({})").format(column_expression(col, type_name=recommendation.casts[col]))
            if col in recommendation.casts
            else sql.Identifier(col)
            for col in recommendation.column_names
        )

        using = sql.SQL("")
        if recommendation.index_type != "btree":
            using = sql.SQL(" USING {}").format(sql.SQL(recommendation.index_type))

        return sql.SQL("CREATE INDEX IF NOT EXISTS {index} ON {table}{using} ({columns})").format(
            index=sql.Identifier(recommendation.index_name),
            table=relation_identifier(recommendation.table_name),
            using=using,
            columns=columns,
        )

    def ensure(
        self,
        staging: str,
        columns: Sequence[str],
        casts: Mapping[str, str] | None = None,
    ) -> bool:
        """
        Create an index on the staging table unless already ensured.

        Args:
            staging: Staging table name
            columns: Staged columns to index
            casts: Optional column -> type for columns indexed as cast expressions

        Returns:
            True if an index was created, False if it was already ensured

        Raises:
            StorageOperationError: If index creation fails
        """
        marker = (staging, tuple(columns))
        if marker in self._ensured:
            logger.debug(f"Index on {staging}({', '.join(columns)}) already ensured")
            return False

        recommendation = IndexRecommendation(
            table_name=staging, column_names=list(columns), casts=dict(casts or {})
        )
        logger.debug(f"Creating index {recommendation.index_name} on {staging}")
        self.storage.create_index(recommendation)
        self._ensured.add(marker)
        return True

    def forget(self, staging: str | None = None) -> None:
        """
        Drop remembered indexes for one staging table, or all of them.

        Called when the transaction that created them rolled back.
        """
        if staging is None:
            self._ensured.clear()
        else:
            self._ensured = {marker for marker in self._ensured if marker[0] != staging}
