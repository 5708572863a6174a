"""
Merge planning and statement rendering.

plan_merge() turns a merge mode plus mappings and resolved column types into
an ordered list of Operation values without touching the database.
render_operation() turns one Operation into a psycopg2.sql.Composed statement.
Keeping the two apart lets the plans be inspected and executed against test
doubles.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from psycopg2 import sql

from .errors import ColumnNotFoundError
from .index import IndexAdvisor, IndexRecommendation
from .keys import KeyListBuilder, column_expression, relation_identifier
from .mapping import ColumnMapping, KeySet
from .modes import MergeMode

STAGING_ALIAS = "o"
TARGET_ALIAS = "d"


class OperationKind(str, Enum):
    """Mutating statements a merge plan may contain."""

    INSERT_NEW = "insert_new"
    UPDATE_CHANGED = "update_changed"
    TRUNCATE = "truncate"


@dataclass(frozen=True)
class Operation:
    """One set-based mutating statement against the target table."""

    kind: OperationKind
    target: str
    staging: str | None = None
    # (source, target) pairs
    columns: tuple[tuple[str, str], ...] = ()
    keys: tuple[tuple[str, str], ...] = ()
    # source column -> target type, for every written column and key
    source_types: Mapping[str, str] = field(default_factory=dict)
    # (source, target) of the timestamp column in timestamp-driven updates
    timestamp: tuple[str, str] | None = None

    @property
    def counts_rows(self) -> bool:
        """TRUNCATE reports no affected rows."""
        return self.kind != OperationKind.TRUNCATE

    @property
    def compared_columns(self) -> tuple[tuple[str, str], ...]:
        """Written non-key columns used by the full value diff."""
        key_targets = {target for _, target in self.keys}
        return tuple(pair for pair in self.columns if pair[1] not in key_targets)

    def describe(self) -> str:
        if self.kind == OperationKind.TRUNCATE:
            return f"truncate {self.target}"
        if self.kind == OperationKind.INSERT_NEW:
            return f"insert new rows {self.staging} -> {self.target}"
        strategy = "newer timestamp" if self.timestamp else "value diff"
        return f"update changed rows {self.staging} -> {self.target} ({strategy})"


@dataclass
class MergePlan:
    """Ordered operations for one reconciliation, plus staging indexes to ensure."""

    mode: MergeMode
    target: str
    staging: str
    operations: list[Operation]
    indexes: list[IndexRecommendation] = field(default_factory=list)

    @property
    def index_columns(self) -> list[list[str]]:
        return [rec.column_names for rec in self.indexes]

    @property
    def kinds(self) -> list[OperationKind]:
        return [op.kind for op in self.operations]

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and dry runs."""
        return {
            "mode": self.mode.value,
            "target": self.target,
            "staging": self.staging,
            "operations": [op.describe() for op in self.operations],
            "index_columns": self.index_columns,
        }


def plan_merge(
    mode: MergeMode,
    target: str,
    staging: str,
    mapping: ColumnMapping,
    keys: KeySet,
    types: Mapping[str, str],
    timestamp_column: str | None = "updated_at",
) -> MergePlan:
    """
    Build the operation list for a merge.

    Args:
        mode: Validated merge mode
        target: Target table ("table" or "schema.table")
        staging: Staging table name
        mapping: Source -> target column mapping
        keys: Identity columns
        types: Target column name -> type
        timestamp_column: Target column that, when written, drives update detection

    Returns:
        MergePlan with operations in execution order

    Raises:
        ColumnNotFoundError: If a written or key column has no type in the target
    """
    source_types = mapping.source_types(types)
    key_types = _key_types(keys, types)
    source_types.update(key_types)

    insert = Operation(
        kind=OperationKind.INSERT_NEW,
        target=target,
        staging=staging,
        columns=tuple(mapping.written),
        keys=tuple(keys),
        source_types=source_types,
    )

    timestamp = None

    if mode == MergeMode.APPEND:
        operations = [insert]

    elif mode == MergeMode.UPDATE:
        operations = [insert]

        if timestamp_column and mapping.writes(timestamp_column):
            timestamp = (mapping.source_for(timestamp_column), timestamp_column)

        update = Operation(
            kind=OperationKind.UPDATE_CHANGED,
            target=target,
            staging=staging,
            columns=tuple(mapping.written),
            keys=tuple(keys),
            source_types=source_types,
            timestamp=timestamp,
        )
        # Nothing can differ when only key columns are written
        if timestamp is not None or update.compared_columns:
            operations.append(update)

    else:  # MergeMode.REPLACE
        operations = [Operation(kind=OperationKind.TRUNCATE, target=target), insert]

    indexes = IndexAdvisor.recommend_for_merge(
        staging,
        keys.source_columns,
        timestamp[0] if timestamp else None,
        types=source_types,
    )

    return MergePlan(
        mode=mode,
        target=target,
        staging=staging,
        operations=operations,
        indexes=indexes,
    )


def _key_types(keys: KeySet, types: Mapping[str, str]) -> dict[str, str]:
    resolved = {}
    for source, target in keys:
        if target not in types:
            raise ColumnNotFoundError(target, "target table")
        resolved[source] = types[target]
    return resolved


def render_operation(operation: Operation) -> sql.Composed:
    """
    Render an operation as a SQL statement.

    Returns:
        psycopg2.sql.Composed ready for cursor.execute()
    """
    if operation.kind == OperationKind.TRUNCATE:
        return sql.SQL("TRUNCATE TABLE {}").format(relation_identifier(operation.target))
    if operation.kind == OperationKind.INSERT_NEW:
        return _render_insert(operation)
    if operation.kind == OperationKind.UPDATE_CHANGED:
        return _render_update(operation)
    raise ValueError(f"Unsupported operation kind: {operation.kind}")


def _key_match(operation: Operation) -> sql.Composed:
    staging_key = KeyListBuilder.build(
        [source for source, _ in operation.keys],
        STAGING_ALIAS,
        operation.source_types,
    )
    target_key = KeyListBuilder.build(
        [target for _, target in operation.keys], TARGET_ALIAS
    )
    return sql.SQL("{} = {}").format(staging_key.as_sql(), target_key.as_sql())


def _render_insert(operation: Operation) -> sql.Composed:
    target_columns = sql.SQL(", ").join(
        sql.Identifier(target) for _, target in operation.columns
    )
    selected = KeyListBuilder.build(
        [source for source, _ in operation.columns],
        STAGING_ALIAS,
        operation.source_types,
    )

    return sql.SQL(
        "INSERT INTO {target} ({target_columns}) "
        "SELECT {selected} FROM {staging} AS {o} "
        "WHERE NOT EXISTS (SELECT 1 FROM {target} AS {d} WHERE {match})"
    ).format(
        target=relation_identifier(operation.target),
        target_columns=target_columns,
        selected=selected.as_list(),
        staging=relation_identifier(operation.staging),
        o=sql.Identifier(STAGING_ALIAS),
        d=sql.Identifier(TARGET_ALIAS),
        match=_key_match(operation),
    )


def _render_update(operation: Operation) -> sql.Composed:
    assignments = sql.SQL(", ").join(
        sql.SQL("{} = {}").format(
            sql.Identifier(target),
            column_expression(source, STAGING_ALIAS, operation.source_types[source]),
        )
        for source, target in operation.columns
    )

    if operation.timestamp is not None:
        source, target = operation.timestamp
        changed = sql.SQL("{} > {}").format(
            column_expression(source, STAGING_ALIAS, operation.source_types[source]),
            column_expression(target, TARGET_ALIAS),
        )
    else:
        compared = operation.compared_columns
        staged = KeyListBuilder.build(
            [source for source, _ in compared], STAGING_ALIAS, operation.source_types
        )
        stored = KeyListBuilder.build([target for _, target in compared], TARGET_ALIAS)
        changed = sql.SQL("ROW({}) IS DISTINCT FROM ROW({})").format(
            staged.as_list(), stored.as_list()
        )

    return sql.SQL(
        "UPDATE {target} AS {d} SET {assignments} "
        "FROM {staging} AS {o} "
        "WHERE {match} AND {changed}"
    ).format(
        target=relation_identifier(operation.target),
        d=sql.Identifier(TARGET_ALIAS),
        assignments=assignments,
        staging=relation_identifier(operation.staging),
        o=sql.Identifier(STAGING_ALIAS),
        match=_key_match(operation),
        changed=changed,
    )
