"""Trust-on-first-use pinning of certification authority and company identities."""

import logging
from typing import Mapping, Optional, Sequence

from ..core.error import BaseError
from ..core.profile import Profile
from ..vc.hasher import BaseCredentialHasher, Sha256CredentialHasher
from ..vc.proof_parser import issuer_id
from ..vc.validator import credential_subject
from .models.pin_record import PinRecord

LOGGER = logging.getLogger(__name__)


class IdentityPinMismatchError(BaseError):
    """A presented identity differs from the pinned one."""

    def __init__(self, category: str, pinned_did: str, presented_did: str):
        """Initialize the error with both DIDs for the security warning."""
        super().__init__(
            f"{category.upper()} identity has changed: pinned {pinned_did}, "
            f"presented {presented_did}. Connection refused as a possible "
            "identity substitution.",
            error_code="identity_pin_mismatch",
        )
        self.category = category
        self.pinned_did = pinned_did
        self.presented_did = presented_did


class IdentityPinningStore:
    """
    At most one pinned identity per trust category, per wallet.

    A pin is written once, on the first successful connection, and never
    overwritten here. Replacing a pin is a separate, explicit administrative
    action that this store does not offer.
    """

    CATEGORY_CA = PinRecord.CATEGORY_CA
    CATEGORY_COMPANY = PinRecord.CATEGORY_COMPANY

    def __init__(self, profile: Profile):
        """
        Initialize the pinning store.

        Args:
            profile: The profile of the wallet whose pins are managed

        """
        self._profile = profile

    @property
    def profile(self) -> Profile:
        """Accessor for the current profile."""
        return self._profile

    @staticmethod
    def _check_category(category: str):
        if category not in PinRecord.CATEGORIES:
            raise ValueError(f"Unknown pin category: {category}")

    async def get_pin(self, category: str) -> Optional[PinRecord]:
        """Return the pin for a category, if any."""
        self._check_category(category)
        async with self._profile.session() as session:
            pins = await PinRecord.query(session, {"category": category})
        return pins[0] if pins else None

    async def is_pinned(self, category: str) -> bool:
        """Check whether an identity has been pinned for a category."""
        return (await self.get_pin(category)) is not None

    async def pin(self, category: str, pin: PinRecord) -> PinRecord:
        """
        Pin an identity unless one is already pinned for the category.

        Returns:
            The pin now in force, which is the existing one when present

        """
        self._check_category(category)
        pin.category = category
        async with self._profile.transaction() as txn:
            existing = await PinRecord.query(txn, {"category": category})
            if existing:
                current = existing[0]
                if current.did != pin.did:
                    LOGGER.warning(
                        "Refusing to replace %s pin %s with %s",
                        category,
                        current.did,
                        pin.did,
                    )
                return current
            await pin.save(txn, reason=f"Pinned {category} identity")
            await txn.commit()
        LOGGER.info("Pinned %s identity %s (%s)", category, pin.did, pin.display_name)
        return pin

    async def verify_against_pin(self, category: str, did: str) -> bool:
        """Compare a presented DID with the pin; true when nothing is pinned."""
        pin = await self.get_pin(category)
        return pin is None or pin.did == did

    async def check_pin(self, category: str, did: str) -> Optional[PinRecord]:
        """
        Verify a presented DID, raising on mismatch.

        Returns:
            The pin in force, if any

        Raises:
            IdentityPinMismatchError: If the DID differs from the pinned DID

        """
        pin = await self.get_pin(category)
        if pin and pin.did != did:
            LOGGER.error(
                "%s DID mismatch: expected %s, received %s", category, pin.did, did
            )
            raise IdentityPinMismatchError(category, pin.did, did)
        return pin

    @staticmethod
    def is_bound(
        claim: PinRecord, credential: Optional[Mapping], presenter_did: str
    ) -> bool:
        """
        Check that the presenting DID is the claimed identity.

        The presenter must either be the DID the claim names or the subject
        the credential was issued to. A credential replayed by anyone else
        is unbound.
        """
        if not presenter_did:
            return False
        subject = credential_subject(credential or {}) or {}
        return presenter_did in (claim.did, subject.get("id"))

    async def check_claim(
        self, claim: PinRecord, credential: Optional[Mapping], presenter_did: str
    ) -> Optional[PinRecord]:
        """
        Check a presented identity claim against the pin of its category.

        Returns:
            The pin in force, if any

        Raises:
            IdentityPinMismatchError: If the claim names another DID than the
                pin, or the presenter is not bound to the pinned identity

        """
        pin = await self.check_pin(claim.category, claim.did)
        if pin and not self.is_bound(claim, credential, presenter_did):
            LOGGER.error(
                "%s identity %s presented by unrelated DID %s",
                claim.category,
                claim.did,
                presenter_did,
            )
            raise IdentityPinMismatchError(claim.category, pin.did, presenter_did)
        return pin

    async def list_pins(self) -> Sequence[PinRecord]:
        """List pins across all categories."""
        async with self._profile.session() as session:
            return await PinRecord.query(session)

    async def claim_from_credential(
        self, category: str, credential: Optional[Mapping], sender_did: str = None
    ) -> Optional[PinRecord]:
        """
        Derive the candidate pin an identity credential asserts.

        Args:
            category: Trust category of the presenting party
            credential: The unwrapped identity credential
            sender_did: DID the invitation came from, used when the
                credential names no DID of its own

        Returns:
            An unsaved pin record, or None if no DID can be determined

        """
        self._check_category(category)
        credential = credential or {}
        subject = credential_subject(credential) or {}
        if category == self.CATEGORY_CA:
            did = subject.get("caDID") or issuer_id(credential.get("issuer"))
            display_name = subject.get("organizationName") or subject.get("name")
        else:
            did = subject.get("companyDID") or subject.get("id")
            display_name = subject.get("companyName") or subject.get("name")
        did = did or sender_did
        if not did:
            return None

        hasher = self._profile.inject_or(
            BaseCredentialHasher, default=Sha256CredentialHasher()
        )
        return PinRecord(
            category=category,
            did=did,
            display_name=display_name or did,
            registration_number=subject.get("registrationNumber"),
            jurisdiction=subject.get("jurisdiction"),
            website=subject.get("website"),
            credential_hash=await hasher.hash(credential) if credential else None,
        )
