"""Aries-Askar implementation of BaseWallet interface."""

import json
from typing import TYPE_CHECKING, Optional, Sequence

from aries_askar import AskarError, Key, KeyAlg

from .base import BaseWallet, DIDInfo
from .error import WalletError, WalletNotFoundError
from .util import bytes_to_b58, verkey_to_peer_did

if TYPE_CHECKING:
    from ..askar.profile import AskarProfileSession

CATEGORY_DID = "did"


class AskarWallet(BaseWallet):
    """Aries-Askar wallet implementation."""

    def __init__(self, session: "AskarProfileSession"):
        """Initialize a new `AskarWallet` instance.

        Args:
            session: The Askar profile session instance to use
        """
        self._session = session

    async def create_local_did(
        self, seed: Optional[bytes] = None, metadata: dict = None
    ) -> DIDInfo:
        """Create and store a new peer DID backed by an ed25519 key."""
        metadata = metadata or {}
        try:
            if seed:
                keypair = Key.from_secret_bytes(KeyAlg.ED25519, seed)
            else:
                keypair = Key.generate(KeyAlg.ED25519)
            verkey = bytes_to_b58(keypair.get_public_bytes())
            did = verkey_to_peer_did(verkey)
            await self._session.handle.insert_key(
                verkey, keypair, metadata=json.dumps(metadata)
            )
            await self._session.handle.insert(
                CATEGORY_DID,
                did,
                value_json={"did": did, "verkey": verkey, "metadata": metadata},
                tags={"method": "peer", "verkey": verkey},
            )
        except AskarError as err:
            raise WalletError("Error when creating local DID") from err
        return DIDInfo(did=did, verkey=verkey, metadata=metadata)

    async def get_local_did(self, did: str) -> DIDInfo:
        """Find info for a local DID."""
        try:
            item = await self._session.handle.fetch(CATEGORY_DID, did)
        except AskarError as err:
            raise WalletError("Error when fetching local DID") from err
        if not item:
            raise WalletNotFoundError("Unknown DID: {}".format(did))
        info = item.value_json
        return DIDInfo(did=info["did"], verkey=info["verkey"], metadata=info["metadata"])

    async def get_local_dids(self) -> Sequence[DIDInfo]:
        """Get list of defined local DIDs."""
        rows = await self._session.handle.fetch_all(CATEGORY_DID)
        return [
            DIDInfo(
                did=row.value_json["did"],
                verkey=row.value_json["verkey"],
                metadata=row.value_json["metadata"],
            )
            for row in rows
        ]
