"""In-memory implementation of BaseWallet interface."""

from typing import TYPE_CHECKING, Optional, Sequence

import nacl.bindings

from .base import BaseWallet, DIDInfo
from .error import WalletNotFoundError
from .util import bytes_to_b58, random_seed, verkey_to_peer_did

if TYPE_CHECKING:
    from ..core.in_memory import InMemoryProfile


class InMemoryWallet(BaseWallet):
    """In-memory wallet implementation keeping keys on the profile."""

    def __init__(self, profile: "InMemoryProfile"):
        """Initialize an `InMemoryWallet` instance.

        Args:
            profile: The in-memory profile used to store state

        """
        self.profile = profile

    async def create_local_did(
        self, seed: Optional[bytes] = None, metadata: dict = None
    ) -> DIDInfo:
        """Create and store a new peer DID backed by an ed25519 key."""
        verkey_bytes, secret = nacl.bindings.crypto_sign_seed_keypair(
            seed or random_seed()
        )
        verkey = bytes_to_b58(verkey_bytes)
        did = verkey_to_peer_did(verkey)
        self.profile.keys[verkey] = {"secret": secret, "metadata": metadata or {}}
        self.profile.local_dids[did] = {
            "verkey": verkey,
            "metadata": metadata or {},
        }
        return DIDInfo(did=did, verkey=verkey, metadata=metadata or {})

    async def get_local_did(self, did: str) -> DIDInfo:
        """Find info for a local DID."""
        info = self.profile.local_dids.get(did)
        if not info:
            raise WalletNotFoundError("DID not found: {}".format(did))
        return DIDInfo(did=did, verkey=info["verkey"], metadata=info["metadata"].copy())

    async def get_local_dids(self) -> Sequence[DIDInfo]:
        """Get list of defined local DIDs."""
        return [
            DIDInfo(did=did, verkey=info["verkey"], metadata=info["metadata"].copy())
            for did, info in self.profile.local_dids.items()
        ]
