"""
Credential management for the CLI.

Connection settings come from Vault when --use-vault is given, otherwise from
command-line arguments falling back to POSTGRES_* environment variables.
"""

import argparse
import logging
import os

import requests

from utils.vault_client import VaultClient

logger = logging.getLogger(__name__)


class CredentialsError(Exception):
    """Raised when database credentials cannot be determined."""

    pass


def _parse_port(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise CredentialsError(f"Invalid database port: {value!r}") from None


def get_credentials_from_vault_or_env(args: argparse.Namespace) -> dict:
    """
    Get PostgreSQL connection settings

    Args:
        args: Parsed command-line arguments

    Returns:
        Dict with host, port, database, username, password

    Raises:
        CredentialsError: If Vault fails or no password is available
    """
    if args.use_vault:
        try:
            creds = VaultClient().get_postgres_credentials()
        except (ValueError, requests.RequestException) as e:
            raise CredentialsError(f"Failed to fetch credentials from Vault: {e}") from e

        return {
            "host": creds["host"],
            "port": _parse_port(creds["port"]),
            "database": creds["database"],
            "username": creds["username"],
            "password": creds["password"],
        }

    config = {
        "host": args.host or os.getenv("POSTGRES_HOST", "localhost"),
        "port": _parse_port(args.port or os.getenv("POSTGRES_PORT", "5432")),
        "database": args.database or os.getenv("POSTGRES_DB", "postgres"),
        "username": args.user or os.getenv("POSTGRES_USER", "postgres"),
        "password": args.password or os.getenv("POSTGRES_PASSWORD"),
    }

    if not config["password"]:
        raise CredentialsError("Database password not provided")

    return config
