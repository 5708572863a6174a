"""
Unit tests for CLI module

Tests for the command-line interface functionality including
argument parsing, credential handling, and command execution.
"""

from unittest.mock import patch

import psycopg2
import pytest
import requests

from bulk_import.cli import cmd_load, create_parser, get_credentials_from_vault_or_env, main
from bulk_import.cli.commands import EXIT_CONFIGURATION_ERROR, EXIT_FAILURE, EXIT_OK
from bulk_import.cli.credentials import CredentialsError
from bulk_import.errors import SchemaLookupError, StorageOperationError
from bulk_import.mapping import ColumnMapping
from bulk_import.modes import MergeMode
from bulk_import.staging import CopyOptions

BASE_ARGS = [
    "load",
    "--table", "customers",
    "--file", "customers.csv",
    "--columns", "id,name,note=",
    "--keys", "id",
]


def parse(*extra):
    return create_parser().parse_args([*BASE_ARGS, *extra])


class TestCreateParser:
    """Tests for argument parsing"""

    def test_load_defaults(self):
        args = parse()

        assert args.command == "load"
        assert args.mode == "append"
        assert args.timestamp_column == "updated_at"
        assert args.format == "csv"
        assert args.delimiter == ","
        assert args.null == ""
        assert args.no_header is False
        assert args.dry_run is False
        assert args.use_vault is False

    def test_load_options(self):
        args = parse("--mode", "update", "--delimiter", ";", "--no-header", "--full-diff", "--dry-run")

        assert args.mode == "update"
        assert args.delimiter == ";"
        assert args.no_header is True
        assert args.full_diff is True
        assert args.dry_run is True

    def test_invalid_mode_rejected(self):
        with pytest.raises(SystemExit):
            parse("--mode", "upsert")

    def test_required_arguments(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["load", "--table", "customers"])


class TestGetCredentials:
    """Tests for get_credentials_from_vault_or_env"""

    def test_from_args(self):
        args = parse("--host", "db", "--port", "6543", "--database", "crm", "--user", "u", "--password", "p")

        assert get_credentials_from_vault_or_env(args) == {
            "host": "db",
            "port": 6543,
            "database": "crm",
            "username": "u",
            "password": "p",
        }

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("POSTGRES_HOST", "pg.internal")
        monkeypatch.setenv("POSTGRES_PASSWORD", "secret")

        config = get_credentials_from_vault_or_env(parse())

        assert config["host"] == "pg.internal"
        assert config["password"] == "secret"

    def test_missing_password(self, monkeypatch):
        monkeypatch.delenv("POSTGRES_PASSWORD", raising=False)

        with pytest.raises(CredentialsError, match="password"):
            get_credentials_from_vault_or_env(parse())

    def test_invalid_port(self):
        with pytest.raises(CredentialsError, match="Invalid database port"):
            get_credentials_from_vault_or_env(parse("--port", "fivefourthreetwo"))

    @patch("bulk_import.cli.credentials.VaultClient")
    def test_from_vault(self, mock_vault):
        mock_vault.return_value.get_postgres_credentials.return_value = {
            "host": "vault-db",
            "port": "5433",
            "database": "crm",
            "username": "svc",
            "password": "from-vault",
        }

        config = get_credentials_from_vault_or_env(parse("--use-vault"))

        assert config["host"] == "vault-db"
        assert config["port"] == 5433
        assert config["password"] == "from-vault"

    @patch("bulk_import.cli.credentials.VaultClient")
    def test_vault_failure(self, mock_vault):
        mock_vault.return_value.get_postgres_credentials.side_effect = requests.ConnectionError("refused")

        with pytest.raises(CredentialsError, match="Vault"):
            get_credentials_from_vault_or_env(parse("--use-vault"))


@pytest.fixture
def connect():
    with patch("bulk_import.cli.commands.psycopg2.connect") as connect:
        yield connect


@pytest.fixture
def metrics():
    with patch("bulk_import.cli.commands.ImportMetrics") as metrics_cls:
        yield metrics_cls.return_value


class TestCmdLoad:
    """Tests for the load command"""

    @patch("bulk_import.cli.commands.import_from_csv", return_value=3)
    def test_successful_import(self, mock_import, connect, metrics, capsys):
        exit_code = cmd_load(parse("--mode", "update", "--no-header", "--delimiter", ";"))

        assert exit_code == EXIT_OK
        args, kwargs = mock_import.call_args
        assert args[1] == "customers"
        assert args[2] == "customers.csv"
        assert args[3] == ColumnMapping.parse("id,name,note=")
        assert args[4].target_columns == ["id"]
        assert kwargs["mode"] is MergeMode.UPDATE
        assert kwargs["options"] == CopyOptions(delimiter=";", header=False)
        assert kwargs["timestamp_column"] == "updated_at"
        assert kwargs["metrics"] is metrics
        assert "3 rows imported into customers" in capsys.readouterr().out
        connect.return_value.close.assert_called_once()

    @patch("bulk_import.cli.commands.import_from_csv", return_value=0)
    def test_full_diff_disables_timestamp(self, mock_import, connect, metrics):
        cmd_load(parse("--mode", "update", "--full-diff"))

        assert mock_import.call_args[1]["timestamp_column"] is None

    @patch("bulk_import.cli.commands.import_from_csv", return_value=1)
    def test_pushgateway(self, mock_import, connect, metrics):
        cmd_load(parse("--pushgateway", "localhost:9091"))

        metrics.push.assert_called_once_with("localhost:9091")

    def test_invalid_columns(self, connect):
        args = parse()
        args.columns = "id,=name"

        assert cmd_load(args) == EXIT_CONFIGURATION_ERROR
        connect.assert_not_called()

    def test_key_not_in_columns(self, connect):
        args = parse()
        args.keys = "uid"

        assert cmd_load(args) == EXIT_CONFIGURATION_ERROR
        connect.assert_not_called()

    def test_invalid_table(self, connect):
        args = parse()
        args.table = "customers; DROP TABLE x"

        assert cmd_load(args) == EXIT_CONFIGURATION_ERROR

    def test_invalid_copy_options(self, connect):
        assert cmd_load(parse("--delimiter", "||")) == EXIT_CONFIGURATION_ERROR

    @patch("bulk_import.cli.commands.import_from_csv", return_value=2)
    def test_text_format_ignores_header(self, mock_import, connect, metrics):
        exit_code = cmd_load(parse("--format", "text"))

        assert exit_code == EXIT_OK
        assert mock_import.call_args[1]["options"] == CopyOptions(format="text", header=False)

    def test_invalid_port(self, connect):
        assert cmd_load(parse("--port", "abc")) == EXIT_CONFIGURATION_ERROR
        connect.assert_not_called()

    def test_missing_credentials(self, connect, monkeypatch):
        monkeypatch.delenv("POSTGRES_PASSWORD", raising=False)

        assert cmd_load(parse()) == EXIT_CONFIGURATION_ERROR
        connect.assert_not_called()

    def test_connection_failure(self, connect):
        connect.side_effect = psycopg2.OperationalError("could not connect")

        assert cmd_load(parse()) == EXIT_FAILURE

    @pytest.mark.parametrize("error", [
        SchemaLookupError("customers"),
        StorageOperationError("insert new rows", RuntimeError("disk full")),
    ])
    def test_import_failure(self, connect, metrics, error):
        with patch("bulk_import.cli.commands.import_from_csv", side_effect=error):
            assert cmd_load(parse()) == EXIT_FAILURE

        connect.return_value.close.assert_called_once()

    @patch("bulk_import.cli.commands.import_from_csv")
    @patch("bulk_import.cli.commands.print_plan")
    def test_dry_run(self, mock_print_plan, mock_import, connect, metrics):
        assert cmd_load(parse("--dry-run")) == EXIT_OK

        mock_print_plan.assert_called_once()
        mock_import.assert_not_called()


class TestMain:
    """Tests for main entry point"""

    @patch("bulk_import.cli.cmd_load", return_value=0)
    @patch("bulk_import.cli.configure_from_env")
    def test_dispatches_load(self, mock_logging, mock_cmd_load):
        assert main([*BASE_ARGS]) == 0

        mock_logging.assert_called_once_with(None)
        mock_cmd_load.assert_called_once()

    @patch("bulk_import.cli.configure_from_env")
    def test_log_level_is_passed(self, mock_logging):
        with patch("bulk_import.cli.cmd_load", return_value=0):
            main(["--log-level", "DEBUG", *BASE_ARGS])

        mock_logging.assert_called_once_with("DEBUG")

    @patch("bulk_import.cli.configure_from_env")
    def test_no_command_prints_help(self, mock_logging, capsys):
        assert main([]) == 1
        assert "usage: bulk-import" in capsys.readouterr().out
