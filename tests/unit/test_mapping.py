"""
Unit tests for column mappings and key sets
"""

import pytest

from bulk_import.errors import (
    ColumnNotFoundError,
    ConfigurationError,
    DuplicateTargetColumnError,
)
from bulk_import.mapping import ColumnMapping, KeySet


class TestColumnMappingParse:
    """Tests for parsing "src[=tgt],..." mappings"""

    def test_parse_plain_names_map_to_themselves(self):
        mapping = ColumnMapping.parse("id,name")

        assert list(mapping) == [("id", "id"), ("name", "name")]

    def test_parse_rename_and_skip(self):
        mapping = ColumnMapping.parse("Id=id, Notes=, Modified=updated_at")

        assert mapping.source_columns == ["Id", "Notes", "Modified"]
        assert mapping.written == [("Id", "id"), ("Modified", "updated_at")]
        assert mapping.target_for("Notes") is None

    def test_parse_ignores_empty_items(self):
        assert len(ColumnMapping.parse("id,,name,")) == 2

    def test_parse_rejects_empty_source(self):
        with pytest.raises(ConfigurationError, match="Empty source column"):
            ColumnMapping.parse("id,=name")


class TestColumnMapping:
    """Tests for ColumnMapping"""

    def test_empty_mapping_rejected(self):
        with pytest.raises(ConfigurationError):
            ColumnMapping({})

    def test_mapping_without_written_columns_rejected(self):
        with pytest.raises(ConfigurationError, match="does not write"):
            ColumnMapping({"a": None, "b": None})

    def test_duplicate_target_rejected(self):
        with pytest.raises(DuplicateTargetColumnError) as exc_info:
            ColumnMapping({"a": "x", "b": "x"})

        assert exc_info.value.column == "x"

    def test_source_for_and_writes(self):
        mapping = ColumnMapping({"src_id": "id", "note": None})

        assert mapping.source_for("id") == "src_id"
        assert mapping.writes("id") is True
        assert mapping.writes("note") is False

    def test_source_for_unknown_target(self):
        mapping = ColumnMapping({"id": "id"})

        with pytest.raises(ColumnNotFoundError):
            mapping.source_for("missing")

    def test_target_for_unknown_source(self):
        with pytest.raises(ColumnNotFoundError):
            ColumnMapping({"id": "id"}).target_for("missing")

    def test_source_types_keys_target_types_by_source(self):
        mapping = ColumnMapping({"Id": "id", "Name": "name", "Skip": None})

        types = mapping.source_types({"id": "int4", "name": "text", "extra": "bool"})

        assert types == {"Id": "int4", "Name": "text"}

    def test_source_types_missing_target_column(self):
        mapping = ColumnMapping({"id": "id", "colour": "color"})

        with pytest.raises(ColumnNotFoundError) as exc_info:
            mapping.source_types({"id": "int4"})

        assert exc_info.value.column == "color"
        assert exc_info.value.where == "target table"

    def test_equality(self):
        assert ColumnMapping.parse("a,b=c") == ColumnMapping({"a": "a", "b": "c"})
        assert ColumnMapping.parse("a,b") != ColumnMapping.parse("b,a")


class TestKeySet:
    """Tests for KeySet"""

    def test_empty_key_set_rejected(self):
        with pytest.raises(ConfigurationError):
            KeySet({})

    def test_key_without_target_rejected(self):
        with pytest.raises(ConfigurationError, match="no target"):
            KeySet.parse("id=")

    def test_parse_preserves_order(self):
        keys = KeySet.parse("region,Code=code")

        assert keys.source_columns == ["region", "Code"]
        assert keys.target_columns == ["region", "code"]
        assert "Code" in keys

    def test_validate_against_accepts_mapped_keys(self):
        mapping = ColumnMapping.parse("Code=code,name")

        KeySet.parse("Code=code").validate_against(mapping)

    def test_validate_against_unknown_source(self):
        mapping = ColumnMapping.parse("id,name")

        with pytest.raises(ColumnNotFoundError) as exc_info:
            KeySet.parse("uid=id").validate_against(mapping)

        assert exc_info.value.column == "uid"

    def test_validate_against_unwritten_target(self):
        mapping = ColumnMapping.parse("id=,name")

        with pytest.raises(ColumnNotFoundError) as exc_info:
            KeySet.parse("id").validate_against(mapping)

        assert exc_info.value.where == "column mapping targets"

    def test_validate_against_key_pair_not_in_mapping(self):
        mapping = ColumnMapping({"id": "legacy_id", "ext": "id"})

        with pytest.raises(ColumnNotFoundError) as exc_info:
            KeySet({"id": "id"}).validate_against(mapping)

        assert exc_info.value.column == "id=id"
        assert exc_info.value.where == "column mapping targets"
