"""Wallet base class."""

from abc import ABC, abstractmethod
from typing import NamedTuple, Optional, Sequence


class DIDInfo(NamedTuple):
    """A DID held by the wallet along with its public key."""

    did: str
    verkey: str
    metadata: dict


class BaseWallet(ABC):
    """Abstract wallet interface.

    Only the DID operations the invitation engine needs are exposed: creating
    fresh peer DIDs for invitations and connections, and looking them up.
    """

    @abstractmethod
    async def create_local_did(
        self, seed: Optional[bytes] = None, metadata: dict = None
    ) -> DIDInfo:
        """
        Create and store a new peer DID.

        Args:
            seed: Optional 32-byte seed for the ed25519 key
            metadata: Metadata to store with the DID

        Returns:
            A `DIDInfo` instance representing the created DID

        """

    @abstractmethod
    async def get_local_did(self, did: str) -> DIDInfo:
        """
        Find info for a local DID.

        Raises:
            WalletNotFoundError: If the DID is not held by this wallet

        """

    @abstractmethod
    async def get_local_dids(self) -> Sequence[DIDInfo]:
        """Get list of defined local DIDs."""

    def __repr__(self) -> str:
        """Get a human readable string."""
        return "<{}>".format(self.__class__.__name__)
