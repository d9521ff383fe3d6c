"""Aries-Askar store configuration."""

import logging
import urllib.parse
from pathlib import Path
from typing import Any, Mapping

from aries_askar import AskarError, AskarErrorCode, Store

from ..core.error import ProfileDuplicateError, ProfileError, ProfileNotFoundError

LOGGER = logging.getLogger(__name__)


class AskarStoreConfig:
    """A helper class for handling Askar store configuration."""

    DEFAULT_KEY = ""
    DEFAULT_KEY_DERIVATION = "kdf:argon2i:mod"
    DEFAULT_STORAGE_PATH = "~/.oob_wallet"
    KEY_DERIVATION_RAW = "raw"

    def __init__(self, config: Mapping[str, Any] = None):
        """Initialize a new `AskarStoreConfig` instance."""
        config = config or {}
        self.name = config.get("name") or "default"
        self.key = config.get("key") or self.DEFAULT_KEY
        self.key_derivation_method = (
            config.get("key_derivation_method") or self.DEFAULT_KEY_DERIVATION
        )
        self.storage_path = config.get("storage_path") or self.DEFAULT_STORAGE_PATH
        self.in_memory = bool(config.get("in_memory"))
        self.auto_recreate = bool(config.get("auto_recreate"))
        if self.in_memory and not self.key:
            self.key_derivation_method = self.KEY_DERIVATION_RAW
            self.key = Store.generate_raw_key()

    def get_uri(self, create: bool = False) -> str:
        """Accessor for the sqlite storage URI, one database per wallet."""
        if self.in_memory:
            return "sqlite://:memory:"
        path = Path(self.storage_path).expanduser() / "wallet" / self.name
        if create:
            path.mkdir(parents=True, exist_ok=True)
        return "sqlite://" + urllib.parse.quote(f"{path.as_posix()}/sqlite.db")

    async def open_store(self, provision: bool = False) -> "AskarOpenStore":
        """
        Open a store, creating it first when provisioning.

        Raises:
            ProfileNotFoundError: If the store is not found
            ProfileDuplicateError: If provisioning over an existing store
            ProfileError: If there is another aries_askar error

        """
        try:
            if provision or self.in_memory:
                store = await Store.provision(
                    self.get_uri(create=True),
                    self.key_derivation_method,
                    self.key,
                    recreate=self.auto_recreate,
                )
            else:
                store = await Store.open(
                    self.get_uri(), self.key_derivation_method, self.key
                )
        except AskarError as err:
            if err.code == AskarErrorCode.DUPLICATE:
                raise ProfileDuplicateError(f"Duplicate store '{self.name}'")
            if err.code == AskarErrorCode.NOT_FOUND:
                raise ProfileNotFoundError(f"Store '{self.name}' not found")
            raise ProfileError("Error opening store") from err

        return AskarOpenStore(self, provision, store)


class AskarOpenStore:
    """Handle and metadata for an opened Askar store."""

    def __init__(self, config: AskarStoreConfig, created: bool, store: Store):
        """Create a new AskarOpenStore instance."""
        self.config = config
        self.created = created
        self.store = store

    @property
    def name(self) -> str:
        """Accessor for the store name."""
        return self.config.name

    async def close(self):
        """Close previously-opened store, removing it if so configured."""
        if self.store:
            await self.store.close(remove=self.config.in_memory)
            self.store = None
