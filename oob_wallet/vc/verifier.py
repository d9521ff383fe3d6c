"""Credential signature verification."""

import logging
from abc import ABC, abstractmethod

from pydid import DID, InvalidDIDError

from ..core.error import BaseError
from ..wallet.jwt import BadJWSError, jws_decode, jws_verify_ed25519
from ..wallet.util import b58_to_bytes, multikey_to_verkey

LOGGER = logging.getLogger(__name__)


class CredentialVerificationError(BaseError):
    """The verifier could not reach a verdict on a signature."""


class BaseCredentialVerifier(ABC):
    """Interface for checking the issuer signature on a credential."""

    def supports(self, issuer: str) -> bool:
        """Check whether issuer keys can be resolved for the given DID."""
        return True

    @abstractmethod
    async def verify(self, jws: str, issuer: str) -> bool:
        """
        Verify a compact JWS against the issuer's key.

        Args:
            jws: The compact JWS carried by the credential
            issuer: The issuer DID

        Returns:
            Whether the signature is valid

        Raises:
            CredentialVerificationError: If the signature could not be checked

        """


class Ed25519JwsVerifier(BaseCredentialVerifier):
    """Verify EdDSA signatures from issuers with self-certifying key DIDs.

    Handles `did:key` and inception-key `did:peer:0` issuers, whose method
    specific id is the multibase ed25519 public key.
    """

    def supports(self, issuer: str) -> bool:
        """Check for a did:key or did:peer:0 issuer."""
        try:
            did = DID(issuer)
        except InvalidDIDError:
            return False
        if did.method == "key":
            return True
        return did.method == "peer" and did.method_specific_id.startswith("0")

    @staticmethod
    def issuer_verkey(issuer: str) -> bytes:
        """Resolve the raw public key for a key-based issuer DID."""
        try:
            did = DID(issuer)
        except InvalidDIDError as err:
            raise CredentialVerificationError(f"Invalid issuer DID: {issuer}") from err
        multikey = did.method_specific_id
        if did.method == "peer":
            multikey = multikey[1:]
        elif did.method != "key":
            raise CredentialVerificationError(
                f"Unsupported issuer DID method: {did.method}"
            )
        try:
            return b58_to_bytes(multikey_to_verkey(multikey))
        except ValueError as err:
            raise CredentialVerificationError(str(err)) from err

    async def verify(self, jws: str, issuer: str) -> bool:
        """Verify the JWS signature with the key embedded in the issuer DID."""
        try:
            decoded = jws_decode(jws)
            kid = decoded.headers.get("kid")
            if kid and kid.split("#", 1)[0] != issuer:
                LOGGER.warning("JWS key id %s does not belong to issuer %s", kid, issuer)
                return False
            return jws_verify_ed25519(decoded, self.issuer_verkey(issuer))
        except BadJWSError as err:
            raise CredentialVerificationError(str(err)) from err
