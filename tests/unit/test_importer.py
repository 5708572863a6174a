"""
Unit tests for the one-call CSV import
"""

import io
from unittest.mock import MagicMock, Mock, patch

import pytest

from bulk_import.errors import ConfigurationError, StorageOperationError, UnknownMergeModeError
from bulk_import.importer import import_from_csv
from bulk_import.staging import CopyOptions
from tests.support import MemoryStorageEngine


@pytest.fixture
def storage():
    storage = MemoryStorageEngine()
    storage.create_table(
        "customers",
        {"id": "int4", "name": "text", "updated_at": "timestamp"},
        rows=[{"id": 1, "name": "Ada", "updated_at": None}],
    )
    with patch("bulk_import.importer.PostgresStorageEngine", return_value=storage):
        yield storage


class TestImportFromCsv:
    """Tests for import_from_csv"""

    def test_append_from_stream(self, storage):
        data = io.BytesIO(b"id,name\n1,Ada\n2,Bob\n")

        rows = import_from_csv(MagicMock(), "customers", data, {"id": "id", "name": "name"}, {"id": "id"})

        assert rows == 1
        assert sorted(row["id"] for row in storage.rows("customers")) == [1, 2]

    def test_update_from_file(self, storage, tmp_path):
        path = tmp_path / "customers.txt"
        path.write_text("1|Ada Lovelace|skip\n3|Cy|skip\n", encoding="utf-8")

        rows = import_from_csv(
            MagicMock(),
            "customers",
            str(path),
            {"id": "id", "name": "name", "comment": None},
            {"id": "id"},
            mode="update",
            options=CopyOptions(delimiter="|", header=False),
        )

        assert rows == 2
        assert {row["id"]: row["name"] for row in storage.rows("customers")} == {
            1: "Ada Lovelace",
            3: "Cy",
        }

    def test_staging_is_dropped(self, storage):
        import_from_csv(MagicMock(), "customers", io.BytesIO(b"id\n5\n"), {"id": "id"}, {"id": "id"})

        assert storage.staging_columns == {}
        assert set(storage.tables) == {"customers"}

    def test_staging_is_dropped_on_failure(self, storage):
        data = io.BytesIO(b"id\nabc\n")

        with pytest.raises(StorageOperationError):
            import_from_csv(MagicMock(), "customers", data, {"id": "id"}, {"id": "id"})

        assert set(storage.tables) == {"customers"}
        assert len(storage.rows("customers")) == 1

    def test_invalid_mode_fails_before_staging(self, storage):
        create_staging = Mock()
        storage.create_staging = create_staging

        with pytest.raises(UnknownMergeModeError):
            import_from_csv(MagicMock(), "customers", io.BytesIO(), {"id": "id"}, {"id": "id"}, mode="merge")

        create_staging.assert_not_called()

    def test_invalid_target_name(self, storage):
        with pytest.raises(ConfigurationError, match="Invalid schema.table"):
            import_from_csv(MagicMock(), "customers; --", io.BytesIO(), {"id": "id"}, {"id": "id"})

    def test_metrics_are_recorded(self, storage):
        metrics = Mock()

        import_from_csv(
            MagicMock(), "customers", io.BytesIO(b"id\n9\n"), {"id": "id"}, {"id": "id"}, metrics=metrics
        )

        metrics.record_staging_load.assert_called_once_with("customers", 1)
        assert metrics.record_run.call_args[1]["success"] is True
