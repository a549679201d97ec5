"""JWT signing secret provider.

The signing secret is fetched from a secret store once per process and
memoized. The provider is constructed at startup and injected into the
session service rather than living in module state, so tests can substitute
their own store and operators can force a reload with ``invalidate()``.
"""

import asyncio
from typing import Protocol

import structlog

from corporate_auth.core.config import Settings

logger = structlog.get_logger()


class SecretStore(Protocol):
    """Secret-management collaborator: resolves a secret by name."""

    async def get_secret(self, name: str) -> str:
        """Return the secret value stored under ``name``."""
        ...


class SettingsSecretStore:
    """Secret store backed by application settings.

    Resolves ``settings.jwt_secret_name`` to ``settings.jwt_secret``. Any other
    name is unknown.
    """

    def __init__(self, config: Settings) -> None:
        self._config = config

    async def get_secret(self, name: str) -> str:
        if name != self._config.jwt_secret_name:
            msg = f"Unknown secret: {name}"
            raise KeyError(msg)
        return self._config.jwt_secret.get_secret_value()


class SecretProvider:
    """Lazily loaded, cached signing secret.

    Args:
        store: Where the secret lives.
        name: Secret name to request from the store.
    """

    def __init__(self, store: SecretStore, name: str) -> None:
        self._store = store
        self._name = name
        self._cached: str | None = None
        self._lock = asyncio.Lock()

    async def get(self) -> str:
        """Return the signing secret, loading it on first use.

        Raises:
            RuntimeError: If the store returns an empty secret.
        """
        if self._cached is not None:
            return self._cached

        async with self._lock:
            if self._cached is None:
                value = await self._store.get_secret(self._name)
                if not value:
                    msg = f"Secret '{self._name}' is empty"
                    raise RuntimeError(msg)
                self._cached = value
                logger.info("signing_secret_loaded", secret_name=self._name)
        return self._cached

    def invalidate(self) -> None:
        """Drop the cached value so the next ``get()`` reloads it."""
        self._cached = None


def build_secret_provider(config: Settings) -> SecretProvider:
    """Create the process-wide secret provider from settings."""
    return SecretProvider(SettingsSecretStore(config), config.jwt_secret_name)
