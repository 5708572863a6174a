"""
Column mappings between staged data and the target table.

A ColumnMapping lists every staged column in load order together with the
target column it is written to. A KeySet is the ordered subset of that
mapping which identifies a row.
"""

from collections.abc import Iterator, Mapping

from .errors import ColumnNotFoundError, ConfigurationError, DuplicateTargetColumnError


def _parse_pairs(text: str) -> list[tuple[str, str | None]]:
    """
    Parse "src[=tgt],..." into ordered pairs.

    "id" maps id to id, "name=full_name" renames, "note=" loads the column
    into staging but never writes it.
    """
    pairs = []
    for item in text.split(","):
        item = item.strip()
        if not item:
            continue
        if "=" in item:
            source, target = item.split("=", 1)
            source = source.strip()
            target = target.strip() or None
        else:
            source = target = item
        if not source:
            raise ConfigurationError(f"Empty source column in {text!r}")
        pairs.append((source, target))
    return pairs


class ColumnMapping:
    """Ordered mapping of source column name to target column name (or None)."""

    def __init__(self, columns: Mapping[str, str | None]):
        self._pairs: tuple[tuple[str, str | None], ...] = tuple(columns.items())

        if not self._pairs:
            raise ConfigurationError("Column mapping cannot be empty")

        seen = set()
        for _, target in self._pairs:
            if target is None:
                continue
            if target in seen:
                raise DuplicateTargetColumnError(target)
            seen.add(target)

        if not seen:
            raise ConfigurationError("Column mapping does not write any target column")

    @classmethod
    def parse(cls, text: str) -> "ColumnMapping":
        """Build a mapping from a "src[=tgt],..." string."""
        return cls(dict(_parse_pairs(text)))

    @property
    def source_columns(self) -> list[str]:
        """All staged columns, in load order."""
        return [source for source, _ in self._pairs]

    @property
    def written(self) -> list[tuple[str, str]]:
        """(source, target) pairs that are written to the target table."""
        return [(source, target) for source, target in self._pairs if target is not None]

    @property
    def target_columns(self) -> list[str]:
        return [target for _, target in self.written]

    def target_for(self, source: str) -> str | None:
        for src, target in self._pairs:
            if src == source:
                return target
        raise ColumnNotFoundError(source, "column mapping")

    def source_for(self, target: str) -> str:
        for source, tgt in self.written:
            if tgt == target:
                return source
        raise ColumnNotFoundError(target, "column mapping")

    def writes(self, target: str) -> bool:
        return target in self.target_columns

    def source_types(self, types: Mapping[str, str]) -> dict[str, str]:
        """
        Key the target column types by source column name.

        Args:
            types: Target column name -> type, as resolved by TypeCatalog

        Returns:
            Source column name -> type for every written column

        Raises:
            ColumnNotFoundError: If a written target column has no type
        """
        resolved = {}
        for source, target in self.written:
            if target not in types:
                raise ColumnNotFoundError(target, "target table")
            resolved[source] = types[target]
        return resolved

    def __iter__(self) -> Iterator[tuple[str, str | None]]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColumnMapping):
            return NotImplemented
        return self._pairs == other._pairs

    def __repr__(self) -> str:
        return f"ColumnMapping({dict(self._pairs)!r})"


class KeySet:
    """Ordered (source, target) pairs identifying a row."""

    def __init__(self, keys: Mapping[str, str]):
        self._pairs: tuple[tuple[str, str], ...] = tuple(keys.items())
        if not self._pairs:
            raise ConfigurationError("Key set cannot be empty")
        for source, target in self._pairs:
            if not target:
                raise ConfigurationError(f"Key column {source!r} has no target column")

    @classmethod
    def parse(cls, text: str) -> "KeySet":
        """Build a key set from a "src[=tgt],..." string."""
        return cls(dict(_parse_pairs(text)))

    @property
    def source_columns(self) -> list[str]:
        return [source for source, _ in self._pairs]

    @property
    def target_columns(self) -> list[str]:
        return [target for _, target in self._pairs]

    def validate_against(self, mapping: ColumnMapping) -> None:
        """
        Check every (source, target) key pair is one of the mapping's pairs.

        Raises:
            ColumnNotFoundError: If a key's source is not mapped, or is mapped
                to a different target
        """
        for source, target in self._pairs:
            if source not in mapping.source_columns:
                raise ColumnNotFoundError(source, "column mapping sources")
            if mapping.target_for(source) != target:
                raise ColumnNotFoundError(f"{source}={target}", "column mapping targets")

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, source: object) -> bool:
        return source in self.source_columns

    def __repr__(self) -> str:
        return f"KeySet({dict(self._pairs)!r})"
