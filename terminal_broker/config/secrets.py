"""
Credential store backed by runtime overrides, Vault and environment variables.
"""

from __future__ import annotations

import logging
import os
import threading
import time

import requests

logger = logging.getLogger("terminal-broker")


def _normalize(key: str) -> str:
    return key.upper().replace("-", "_")


class CredentialStore:
    """
    Resolves configuration values and CLI credentials.

    Priority: runtime override > Vault > environment variable > default

    Overrides are set through the settings API (``POST /api/settings/api-keys``)
    and live only in process memory. Vault (OpenBao/HashiCorp) is used with
    token authentication when ``VAULT_ADDR`` and ``VAULT_TOKEN`` are set.
    """

    def __init__(self) -> None:
        self.vault_addr = os.environ.get("VAULT_ADDR")
        self.vault_token = os.environ.get("VAULT_TOKEN")
        self.vault_mount = os.environ.get("VAULT_MOUNT", "secret")
        self.vault_path = os.environ.get("VAULT_PATH", "terminal-broker")
        self.use_vault = False
        self._overrides: dict[str, str] = {}
        self._vault_cache: dict[str, str] = {}
        self._cache_ttl = 300
        self._cache_time: float = 0
        self._lock = threading.Lock()

        if self.vault_addr and self.vault_token:
            self._connect_vault()

    def _connect_vault(self) -> None:
        """Verify the Vault token; fall back to environment variables on failure."""
        try:
            resp = requests.get(
                f"{self.vault_addr}/v1/auth/token/lookup-self",
                headers={"X-Vault-Token": self.vault_token},
                timeout=5,
            )
            resp.raise_for_status()
            self.use_vault = True
            logger.info(f"Vault connected: {self.vault_addr}")
        except requests.RequestException as e:
            logger.warning(f"Vault unavailable ({e}), using environment variables")
            self.use_vault = False

    def _get_from_vault(self, key: str) -> str | None:
        """
        Read a key from the broker's KV v2 secret.

        Vault keys are matched both as given and lower-cased, so
        ``ANTHROPIC_API_KEY`` and ``anthropic_api_key`` both resolve.
        """
        if not self.use_vault:
            return None

        with self._lock:
            if time.time() - self._cache_time >= self._cache_ttl:
                try:
                    resp = requests.get(
                        f"{self.vault_addr}/v1/{self.vault_mount}/data/{self.vault_path}",
                        headers={"X-Vault-Token": self.vault_token},
                        timeout=5,
                    )
                    resp.raise_for_status()
                    self._vault_cache = resp.json().get("data", {}).get("data", {})
                    self._cache_time = time.time()
                except requests.RequestException as e:
                    logger.error(f"Error reading from Vault for key '{key}': {e}")
                    return None

            return self._vault_cache.get(key) or self._vault_cache.get(key.lower())

    def get(self, key: str, default: str | None = None) -> str | None:
        """
        Retrieve a value: override > Vault > env > default.

        Args:
            key: Key name, e.g. ``anthropic_api_key`` or ``ANTHROPIC_API_KEY``
            default: Default value if not found

        Returns:
            The value, or ``default``
        """
        env_key = _normalize(key)

        with self._lock:
            override = self._overrides.get(env_key)
        if override:
            return override

        if self.use_vault:
            value = self._get_from_vault(env_key)
            if value:
                return value

        return os.environ.get(env_key, default)

    def set_override(self, key: str, value: str) -> None:
        """Store a credential supplied at runtime (settings API)."""
        with self._lock:
            self._overrides[_normalize(key)] = value
        logger.info(f"Credential override set for {_normalize(key)}")

    def clear_overrides(self) -> None:
        with self._lock:
            self._overrides.clear()

    def is_set(self, key: str) -> bool:
        return bool(self.get(key))

    def get_status(self) -> dict:
        """
        Get credential store status.

        Returns:
            Status dictionary (never includes secret values)
        """
        with self._lock:
            overrides = sorted(self._overrides)
        return {
            "vault_configured": bool(self.vault_addr),
            "vault_connected": self.use_vault,
            "vault_addr": self.vault_addr if self.use_vault else None,
            "overrides": overrides,
        }


# Global instance
credential_store = CredentialStore()
