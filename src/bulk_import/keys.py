"""
Composite comparison keys.

Builds the ordered, optionally prefixed and type-cast column expressions used
to compare staged rows with target rows. Identifiers and type names are
composed with psycopg2.sql so no caller-supplied name is ever spliced into
SQL text directly.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from psycopg2 import sql

from .errors import ColumnNotFoundError


def type_identifier(type_name: str) -> sql.Identifier:
    """Identifier for a type name, schema-qualified when it contains a dot."""
    return sql.Identifier(*type_name.split(".", 1))


def relation_identifier(relation: str) -> sql.Identifier:
    """Identifier for "table" or "schema.table"."""
    return sql.Identifier(*relation.split(".", 1))


def column_expression(
    column: str, prefix: str | None = None, type_name: str | None = None
) -> sql.Composed:
    """Render prefix."column"::type, each part optional except the column."""
    parts: list[sql.Composable] = []
    if prefix is not None:
        parts.append(sql.Identifier(prefix, column))
    else:
        parts.append(sql.Identifier(column))
    if type_name is not None:
        parts.append(sql.SQL("::"))
        parts.append(type_identifier(type_name))
    return sql.Composed(parts)


@dataclass(frozen=True)
class CompositeKey:
    """Ordered per-column expressions forming a row-comparison key."""

    columns: tuple[str, ...]
    expressions: tuple[sql.Composed, ...]

    def as_sql(self) -> sql.Composed:
        """Parenthesised row constructor: ("a", "b")."""
        return sql.Composed(
            [sql.SQL("("), sql.SQL(", ").join(self.expressions), sql.SQL(")")]
        )

    def as_list(self) -> sql.Composed:
        """Comma-separated expressions without parentheses."""
        return sql.SQL(", ").join(self.expressions)

    def __len__(self) -> int:
        return len(self.columns)


class KeyListBuilder:
    """Builds composite keys from column lists."""

    @staticmethod
    def build(
        columns: Sequence[str],
        prefix: str | None = None,
        types: Mapping[str, str] | None = None,
    ) -> CompositeKey:
        """
        Build a composite key.

        Args:
            columns: Column names, in comparison order
            prefix: Optional table alias to qualify every column with
            types: Optional column name -> type; when given every column is cast

        Returns:
            CompositeKey preserving the column order

        Raises:
            ColumnNotFoundError: If types is given and a column has no type
        """
        expressions = []
        for column in columns:
            type_name = None
            if types is not None:
                if column not in types:
                    raise ColumnNotFoundError(column)
                type_name = types[column]
            expressions.append(column_expression(column, prefix, type_name))

        return CompositeKey(columns=tuple(columns), expressions=tuple(expressions))
