"""Content hashing of credentials for identity pins."""

from abc import ABC, abstractmethod
from typing import Mapping, Union

from ..messaging.util import canonical_json, sha256_hex


class BaseCredentialHasher(ABC):
    """Interface for computing a content hash of a credential."""

    @abstractmethod
    async def hash(self, credential: Union[Mapping, str]) -> str:
        """Return a stable digest of the credential content."""


class Sha256CredentialHasher(BaseCredentialHasher):
    """SHA-256 over the canonical JSON form (or the raw token for JWTs)."""

    async def hash(self, credential: Union[Mapping, str]) -> str:
        """Return the hex digest of the credential."""
        if isinstance(credential, Mapping):
            if credential.get("_jws"):
                return sha256_hex(credential["_jws"])
            return sha256_hex(canonical_json(credential))
        return sha256_hex(credential)
