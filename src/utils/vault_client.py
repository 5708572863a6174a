"""
HashiCorp Vault client for fetching database credentials

Reads PostgreSQL credentials from the KV v2 secrets engine.
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_SECRET_PATH = "secret/database/postgresql"
REQUIRED_FIELDS = ("host", "database", "username", "password")

_SAFE_PATH = re.compile(r"^[a-zA-Z0-9/_-]+$")


class VaultClient:
    """Minimal Vault KV v2 client."""

    def __init__(
        self,
        vault_addr: Optional[str] = None,
        vault_token: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: VAULT_ADDR env var)
            vault_token: Vault token (default: VAULT_TOKEN env var)
            namespace: Vault Enterprise namespace
            timeout: HTTP timeout in seconds

        Raises:
            ValueError: If the address or token is missing
        """
        self.vault_addr = (vault_addr or os.getenv("VAULT_ADDR") or "").rstrip("/")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError("Vault address not provided. Set VAULT_ADDR or pass vault_addr.")
        if not self.vault_token:
            raise ValueError("Vault token not provided. Set VAULT_TOKEN or pass vault_token.")

        self.headers = {"X-Vault-Token": self.vault_token}
        if namespace:
            self.headers["X-Vault-Namespace"] = namespace

    def get_secret(self, secret_path: str) -> Dict[str, Any]:
        """
        Fetch a secret from the KV v2 engine

        Args:
            secret_path: "<mount>/<path>", e.g. "secret/database/postgresql"

        Returns:
            Secret key/value data

        Raises:
            ValueError: If the path is unsafe or the secret is missing or empty
            requests.RequestException: If the request fails
        """
        if not secret_path or ".." in secret_path or not _SAFE_PATH.match(secret_path):
            raise ValueError(f"Invalid secret_path: {secret_path!r}")

        mount, _, path = secret_path.partition("/")
        url = f"{self.vault_addr}/v1/{mount}/data/{path}"

        logger.debug(f"Fetching secret from {url}")
        response = requests.get(url, headers=self.headers, timeout=self.timeout)

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {secret_path}")
        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {secret_path}")

        return secret_data

    def get_postgres_credentials(self, secret_path: str = DEFAULT_SECRET_PATH) -> Dict[str, Any]:
        """
        Fetch PostgreSQL connection settings

        Returns:
            Dict with host, port, database, username, password

        Raises:
            ValueError: If required fields are missing
        """
        secret_data = dict(self.get_secret(secret_path))

        missing = [name for name in REQUIRED_FIELDS if name not in secret_data]
        if missing:
            raise ValueError(f"Missing required fields in secret: {', '.join(missing)}")

        secret_data.setdefault("port", 5432)
        logger.info("Fetched PostgreSQL credentials from Vault")
        return secret_data
