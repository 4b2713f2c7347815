"""Postgres and Vault access."""

from clients.postgres_client import PostgresClient
from clients.vault_client import VaultClient, VaultError, get_database_url, get_pricing_config
