"""
Secrets and runtime settings from HashiCorp Vault.

AppRole login with credentials from VAULT_* environment variables; startup
fails if any is missing. Every path is read under the 'marketplace/' KV v2
prefix.
"""

import logging
import os
from typing import Any, Dict

import hvac
from hvac.exceptions import Forbidden, InvalidPath, Unauthorized
from pydantic import ValidationError

from core.config import PricingConfig

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "marketplace"

_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, str] = {}


class VaultError(Exception):
    """Settings stored in Vault are unusable."""


def _required_env(*names: str) -> list[str]:
    values = [os.getenv(name) for name in names]
    if not all(values):
        raise ValueError(f"{' and '.join(names)} environment variables are required")
    return values


class VaultClient:
    """Authenticated KV v2 reader scoped to the marketplace prefix."""

    def __init__(self, vault_addr: str | None = None, vault_namespace: str | None = None):
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        if not self.vault_addr:
            raise ValueError("VAULT_ADDR environment variable is required")
        role_id, secret_id = _required_env("VAULT_ROLE_ID", "VAULT_SECRET_ID")

        namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")
        options: Dict[str, Any] = {"url": self.vault_addr}
        if namespace:
            options["namespace"] = namespace
        self.client = hvac.Client(**options)

        try:
            login = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
        except Exception as e:
            logger.error("AppRole login to %s failed: %s", self.vault_addr, e)
            raise PermissionError(f"AppRole authentication failed: {e}") from e
        self.client.token = login["auth"]["client_token"]

        if not self.client.is_authenticated():
            raise PermissionError("Vault authentication failed")
        logger.info("Connected to Vault at %s", self.vault_addr)

    def read(self, path: str) -> Dict[str, Any]:
        """
        All fields of marketplace/<path>.

        Raises:
            PermissionError: Path missing or not accessible
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath as e:
            logger.error("No secret at %s", full_path)
            raise PermissionError(f"Secret path '{full_path}' not found in Vault") from e
        except (Unauthorized, Forbidden) as e:
            logger.error("Vault refused %s: %s", full_path, e)
            raise PermissionError(f"Access denied to secret '{full_path}': {e}") from e
        return response["data"]["data"]

    def get_secret(self, path: str, field: str) -> str:
        """
        One field of marketplace/<path>.

        Raises:
            PermissionError: Path missing or not accessible
            KeyError: Field not in the secret
        """
        data = self.read(path)
        try:
            return data[field]
        except KeyError:
            raise KeyError(
                f"Field '{field}' not found in secret '{_SECRET_PREFIX}/{path}'. "
                f"Available: {', '.join(sorted(data))}"
            ) from None


def _client() -> VaultClient:
    global _vault_client_instance
    if _vault_client_instance is None:
        _vault_client_instance = VaultClient()
    return _vault_client_instance


def get_database_url() -> str:
    """Postgres URL from marketplace/database; read once per process."""
    if "database" not in _secret_cache:
        _secret_cache["database"] = _client().get_secret("database", "url")
    return _secret_cache["database"]


def get_pricing_config() -> PricingConfig:
    """
    PricingConfig from marketplace/pricing.

    Fields the secret leaves out keep their defaults. Read on every call so
    rate changes apply to the next finalization without a restart.

    Raises:
        PermissionError: The secret is missing
        VaultError: A stored value is out of range or malformed
    """
    data = _client().read("pricing")
    known = {k: v for k, v in data.items() if k in PricingConfig.model_fields}
    ignored = sorted(set(data) - set(known))
    if ignored:
        logger.warning("Ignoring unknown pricing settings: %s", ", ".join(ignored))

    try:
        return PricingConfig.model_validate(known)
    except ValidationError as e:
        raise VaultError(f"Invalid pricing settings in '{_SECRET_PREFIX}/pricing': {e}") from e
