"""Classes to manage out-of-band invitations and the connections they lead to."""

import logging
from collections import OrderedDict
from typing import Any, Mapping, NamedTuple, Optional, Union

from marshmallow import EXCLUDE, fields

from ....connections.models.conn_record import ConnRecord
from ....core.error import BaseError
from ....core.profile import Profile
from ....messaging.models.base import BaseModel, BaseModelError, BaseModelSchema
from ....messaging.responder import BaseResponder, ResponderError
from ....messaging.util import time_now
from ....messaging.valid import GENERIC_DID_EXAMPLE, UUID4_EXAMPLE
from ....pinning.manager import IdentityPinningStore
from ....pinning.models.pin_record import PinRecord
from ....storage.error import StorageDuplicateError, StorageError
from ....vc.credential import JwtCredential, load_credential
from ....vc.proof_parser import parse_proof
from ....vc.validator import (
    CredentialValidator,
    InviterIdentity,
    InviterIdentitySchema,
    derive_identity,
)
from ....vc.verifier import BaseCredentialVerifier, Ed25519JwsVerifier
from ....wallet.base import BaseWallet
from .attachments import (
    credential_attachment,
    extract,
    presentation_request_attachment,
)
from .codec import (
    CounterpartyInvitation,
    DecodedInvitation,
    EdgeInvitation,
    LegacyInvitation,
    RawIdentifier,
    build_invitation,
    decode,
)
from .ledger import InvitationStateLedger
from .message_types import (
    ATTACH_VC_PROOF_RESPONSE,
    GOAL_CA_IDENTITY,
    GOAL_COMPANY_EMPLOYEE,
    GOAL_CONNECT,
    GOAL_CONNECT_WITH_CREDENTIAL,
)
from .messages.connection_request import (
    ConnectionRequestBody,
    ConnectionRequestMessage,
)
from .messages.invitation import InvitationMessage
from .models.connection_request import ConnectionRequestItem
from .models.invitation_record import InvitationRecord, InvitationRecordSchema
from .request_queue import ConnectionRequestQueue
from .supervisor import ParseSupervisor

LOGGER = logging.getLogger(__name__)

GOAL_TEXT_VERIFY = "Verify your credentials"
GOAL_TEXT_CONNECT = "To connect and exchange credentials"
GOAL_TEXT_REQUEST = "Connect and share my credential"
UNKNOWN_CONNECTION_LABEL = "Unknown Connection"

# Credential category each trust category presents
PIN_CREDENTIAL_TYPES = {
    PinRecord.CATEGORY_CA: "CertificationAuthorityIdentity",
    PinRecord.CATEGORY_COMPANY: "CompanyIdentity",
}


class OutOfBandManagerError(BaseError):
    """Out of band error."""


class InvitationAcceptanceError(OutOfBandManagerError):
    """Neither the structured nor the fallback acceptance path succeeded."""


class CreatedInvitation(NamedTuple):
    """A freshly created invitation, its URL and its ledger record."""

    invitation: InvitationMessage
    invitation_url: str
    record: Optional[InvitationRecord]


class InvitationPreview(BaseModel):
    """What the user is shown before deciding on a received invitation."""

    class Meta:
        """InvitationPreview metadata."""

        schema_class = "InvitationPreviewSchema"

    def __init__(
        self,
        *,
        kind: str = None,
        invitation_id: str = None,
        label: str = None,
        goal_code: str = None,
        goal: str = None,
        sender_did: str = None,
        has_vc_proof: bool = False,
        vc_proof_type: str = None,
        selective_disclosure: bool = False,
        identity: InviterIdentity = None,
        presentation_request: Mapping[str, Any] = None,
        pin_category: str = None,
        pinned: bool = False,
        credential_changed: bool = False,
        record: InvitationRecord = None,
        credential: Mapping[str, Any] = None,
    ):
        """Initialize the preview; the credential itself is not serialized."""
        super().__init__()
        self.kind = kind
        self.invitation_id = invitation_id
        self.label = label
        self.goal_code = goal_code
        self.goal = goal
        self.sender_did = sender_did
        self.has_vc_proof = has_vc_proof
        self.vc_proof_type = vc_proof_type
        self.selective_disclosure = selective_disclosure
        self.identity = identity
        self.presentation_request = presentation_request
        self.pin_category = pin_category
        self.pinned = pinned
        self.credential_changed = credential_changed
        self.record = record
        self.credential = credential

    @property
    def is_verified(self) -> bool:
        """Whether the inviter presented a credential that passed validation."""
        return bool(self.identity and self.identity.is_verified)


class InvitationPreviewSchema(BaseModelSchema):
    """InvitationPreview schema."""

    class Meta:
        """InvitationPreviewSchema metadata."""

        model_class = InvitationPreview
        unknown = EXCLUDE

    kind = fields.Str(
        required=True,
        metadata={
            "description": "Decoded invitation kind",
            "example": EdgeInvitation.KIND,
        },
    )
    invitation_id = fields.Str(
        required=False,
        metadata={"description": "Invitation identifier", "example": UUID4_EXAMPLE},
    )
    label = fields.Str(required=False, metadata={"example": "Alice"})
    goal_code = fields.Str(required=False, metadata={"example": GOAL_CONNECT})
    goal = fields.Str(required=False, metadata={"example": GOAL_TEXT_CONNECT})
    sender_did = fields.Str(
        required=False,
        metadata={"description": "Inviter DID", "example": GENERIC_DID_EXAMPLE},
    )
    has_vc_proof = fields.Bool(
        required=False,
        metadata={"description": "Inviter attached a credential proof"},
    )
    vc_proof_type = fields.Str(required=False, metadata={"example": "JWT"})
    selective_disclosure = fields.Bool(
        required=False,
        metadata={"description": "Proof format lets the holder withhold claims"},
    )
    identity = fields.Nested(InviterIdentitySchema(), required=False)
    presentation_request = fields.Dict(
        required=False,
        metadata={"description": "Presentation the inviter asks for"},
    )
    pin_category = fields.Str(
        required=False,
        metadata={"description": "Trust category of the inviter", "example": "ca"},
    )
    pinned = fields.Bool(
        required=False,
        metadata={"description": "Inviter matches an existing identity pin"},
    )
    credential_changed = fields.Bool(
        required=False,
        metadata={
            "description": "Pinned identity presents a different credential than"
            " when it was pinned"
        },
    )
    record = fields.Nested(InvitationRecordSchema(), required=False)


class RecentlySeen:
    """Bounded memory of connection events already handled in this session."""

    MAX_ENTRIES = 512

    def __init__(self):
        """Initialize an empty set."""
        self._keys = OrderedDict()

    @classmethod
    def for_profile(cls, profile: Profile) -> "RecentlySeen":
        """Return the set bound to a profile, binding a new one if needed."""
        seen = profile.inject_or(RecentlySeen)
        if seen is None:
            seen = RecentlySeen()
            profile.context.injector.bind_instance(RecentlySeen, seen)
        return seen

    def check_and_add(self, key: str) -> bool:
        """Record a key; returns False if it was already present."""
        if key in self._keys:
            self._keys.move_to_end(key)
            return False
        self._keys[key] = True
        while len(self._keys) > self.MAX_ENTRIES:
            self._keys.popitem(last=False)
        return True

    def __len__(self) -> int:
        """Number of remembered keys."""
        return len(self._keys)


def connection_label(
    alias: str = None,
    revealed: Mapping[str, Any] = None,
    inviter_label: str = None,
) -> str:
    """
    Choose the display label of a new connection.

    In order: the alias, the person's name from the credential, the company
    name from the credential, the inviter label, and a placeholder.
    """
    if alias:
        return alias
    revealed = revealed or {}
    name = " ".join(
        part for part in (revealed.get("firstName"), revealed.get("lastName")) if part
    )
    return (
        name
        or revealed.get("companyName")
        or inviter_label
        or UNKNOWN_CONNECTION_LABEL
    )


def is_peer_did(value: Optional[str]) -> bool:
    """Check that a value looks like a bare peer DID."""
    return bool(value) and RawIdentifier(value).is_peer_did


class OutOfBandManager:
    """Class for managing out of band invitations and connection requests."""

    def __init__(self, profile: Profile, responder: BaseResponder = None):
        """
        Initialize an OutOfBandManager.

        Args:
            profile: The profile for this out of band manager
            responder: Outbound message handler, the bound one if not given

        """
        self._profile = profile
        self._responder = responder
        self.ledger = InvitationStateLedger(profile)
        self.queue = ConnectionRequestQueue(profile)
        self.pins = IdentityPinningStore(profile)
        self.validator = CredentialValidator(profile.settings)
        self.supervisor = ParseSupervisor.for_profile(profile)
        self.recently_seen = RecentlySeen.for_profile(profile)

    @property
    def profile(self) -> Profile:
        """
        Accessor for the current profile.

        Returns:
            The profile for this out of band manager

        """
        return self._profile

    @property
    def responder(self) -> Optional[BaseResponder]:
        """Accessor for the outbound message handler."""
        return self._responder or self._profile.inject_or(BaseResponder)

    @property
    def verifier(self) -> BaseCredentialVerifier:
        """Accessor for the credential signature verifier."""
        return self._profile.inject_or(
            BaseCredentialVerifier, default=Ed25519JwsVerifier()
        )

    async def _bookkeeping(self, description: str, coro):
        try:
            return await coro
        except (StorageError, BaseModelError) as err:
            LOGGER.warning("Failed to %s: %s", description, err)
            return None

    async def _create_did(self, purpose: str) -> str:
        async with self._profile.session() as session:
            wallet = session.inject(BaseWallet)
            info = await wallet.create_local_did(metadata={"purpose": purpose})
        return info.did

    @staticmethod
    def pin_category(decoded: DecodedInvitation) -> Optional[str]:
        """Trust category an invitation is pinned under, if any."""
        if isinstance(decoded, CounterpartyInvitation):
            return PinRecord.CATEGORY_CA
        if decoded.goal_code == GOAL_CA_IDENTITY:
            return PinRecord.CATEGORY_CA
        if decoded.goal_code == GOAL_COMPANY_EMPLOYEE:
            return PinRecord.CATEGORY_COMPANY
        return None

    async def create_invitation(
        self,
        goal_code: str = GOAL_CONNECT,
        *,
        goal: str = None,
        label: str = None,
        attach_credential: Any = None,
        request_presentation: bool = False,
        base_url: str = None,
    ) -> CreatedInvitation:
        """
        Generate a new out-of-band invitation.

        Args:
            goal_code: Goal code telling the invitee what the invitation is for
            goal: Human readable goal, derived from the attachments if not given
            label: Our label, a timestamped default if not given
            attach_credential: Credential to present, in any supported shape
            request_presentation: Ask the invitee for a RealPerson presentation
            base_url: Invitation URL base, the configured one if not given

        Returns:
            The invitation, its URL and its ledger record

        Raises:
            OutOfBandManagerError: If the credential to attach is unusable

        """
        attachments = []
        if attach_credential is not None:
            credential = load_credential(attach_credential)
            if not credential:
                raise OutOfBandManagerError("Credential to attach is not usable")
            attachments.append(credential_attachment(credential))
        if request_presentation:
            attachments.append(presentation_request_attachment())

        if not goal:
            goal = GOAL_TEXT_VERIFY if request_presentation else GOAL_TEXT_CONNECT

        my_did = await self._create_did("invitation")
        invitation = build_invitation(
            goal_code,
            my_did,
            attachments,
            goal=goal,
            label=label or f"Connection invitation: {time_now()}",
        )
        invitation_url = invitation.to_url(
            base_url or self._profile.settings.get_str("oob.invitation_base_url")
        )

        record = await self._bookkeeping(
            "record created invitation",
            self.ledger.create_invitation_record(
                invitation.id,
                label=invitation.body.label,
                inviter_did=my_did,
                invitation_url=invitation_url,
                goal_code=goal_code,
            ),
        )
        LOGGER.info("Created invitation %s (%s)", invitation.id, goal_code)
        return CreatedInvitation(invitation, invitation_url, record)

    async def _inspect(self, decoded: DecodedInvitation) -> InvitationPreview:
        """Extract, validate and pin-check an invitation without side effects."""
        preview = InvitationPreview(
            kind=decoded.kind,
            invitation_id=decoded.invitation_id,
            label=decoded.label,
            goal_code=decoded.goal_code,
            goal=decoded.goal,
            sender_did=decoded.sender_did,
        )
        if isinstance(decoded, RawIdentifier):
            return preview

        extracted = extract(decoded.attachments)
        preview.presentation_request = extracted.request
        credential = extracted.credential
        category = self.pin_category(decoded)
        preview.pin_category = category
        if category:
            preview.pinned = await self.pins.is_pinned(category)
        if not credential:
            return preview

        preview.credential = credential
        preview.vc_proof_type = extracted.proof.FORMAT
        parsed = parse_proof(
            extracted.proof.raw
            if isinstance(extracted.proof, JwtCredential)
            else credential
        )
        preview.selective_disclosure = parsed.selective_disclosure
        result = await self.validator.validate(
            credential,
            self.verifier,
            expected_type=PIN_CREDENTIAL_TYPES.get(category),
        )
        preview.identity = derive_identity(credential, result)
        preview.has_vc_proof = preview.identity.is_verified
        if not result.is_valid:
            LOGGER.warning(
                "Invitation %s carries an unverified credential: %s",
                decoded.invitation_id,
                "; ".join(result.errors),
            )

        if category:
            claim = await self.pins.claim_from_credential(
                category, credential, decoded.sender_did
            )
            if claim:
                pin = await self.pins.check_claim(
                    claim, credential, decoded.sender_did
                )
                if pin and pin.credential_hash not in (None, claim.credential_hash):
                    LOGGER.warning(
                        "Pinned %s identity %s presents a changed credential",
                        category,
                        pin.did,
                    )
                    preview.credential_changed = True
        return preview

    async def receive_invitation(
        self, text: str, *, auto_preview: bool = True
    ) -> InvitationPreview:
        """
        Decode and assess a received invitation, and record it.

        A newer call supersedes one still parsing; only the newest commits.

        Args:
            text: Invitation URL, encoded payload or bare identifier
            auto_preview: Mark the invitation previewed once recorded

        Returns:
            The preview of the invitation

        Raises:
            IdentityPinMismatchError: If the inviter contradicts a pinned identity
            ParseSupersededError: If a newer invitation replaced this one

        """

        async def parse() -> InvitationPreview:
            return await self._inspect(decode(text))

        async def commit(preview: InvitationPreview) -> InvitationPreview:
            if not preview.invitation_id:
                return preview
            preview.record = await self._bookkeeping(
                "record received invitation",
                self.ledger.create_received_invitation_record(
                    preview.invitation_id,
                    label=preview.label,
                    inviter_did=preview.sender_did,
                    invitation_url=text,
                    goal_code=preview.goal_code,
                    has_vc_proof=preview.has_vc_proof,
                    vc_proof_type=preview.vc_proof_type,
                ),
            )
            if auto_preview and preview.record:
                if await self._bookkeeping(
                    "mark invitation previewed",
                    self.ledger.mark_previewed(preview.invitation_id),
                ):
                    preview.record = await self.ledger.find_by_invitation_id(
                        preview.invitation_id
                    )
            return preview

        return await self.supervisor.run(parse, commit)

    @property
    def current_preview(self) -> Optional[InvitationPreview]:
        """The preview of the invitation received last, until cleared."""
        return self.supervisor.current

    def clear_preview(self) -> bool:
        """Drop the current preview unless an invitation is being parsed."""
        return self.supervisor.clear()

    async def accept_invitation(
        self,
        text: str,
        *,
        alias: str = None,
        credential: Any = None,
    ) -> ConnRecord:
        """
        Accept an invitation and establish the connection.

        Structured invitations are answered with a connection request
        carrying our credential; if that fails, a minimal pairing with the
        inviter DID is attempted. Legacy invitations pair directly, and a
        bare peer DID pairs only when an alias is given.

        Args:
            text: Invitation URL, encoded payload or bare identifier
            alias: Label for the new connection
            credential: Credential to present to the inviter

        Returns:
            The connection record

        Raises:
            IdentityPinMismatchError: If the inviter contradicts a pinned identity
            InvitationAcceptanceError: If the invitation was rejected, or no
                acceptance path succeeded

        """
        decoded = decode(text)
        if decoded.invitation_id:
            record = await self.ledger.find_by_invitation_id(decoded.invitation_id)
            if record and record.state == InvitationRecord.STATE_INVITATION_REJECTED:
                raise InvitationAcceptanceError(
                    f"Invitation {decoded.invitation_id} was rejected"
                )
        if isinstance(decoded, EdgeInvitation):
            try:
                return await self._accept_structured(decoded, alias, credential)
            except (OutOfBandManagerError, BaseModelError, ResponderError) as err:
                LOGGER.warning(
                    "Connection request for invitation %s failed, trying direct "
                    "pairing: %s",
                    decoded.invitation_id,
                    err,
                )
                return await self._pair_fallback(decoded, alias, err)
        if isinstance(decoded, LegacyInvitation):
            if not decoded.sender_did:
                raise InvitationAcceptanceError("Invitation names no inviter DID")
            return await self._pair(
                decoded.sender_did,
                invitation_id=decoded.invitation_id,
                label=connection_label(alias, None, decoded.label),
                alias=alias,
                protocol=ConnRecord.PROTOCOL_CONNECTIONS,
            )
        return await self._pair_fallback(decoded, alias)

    async def _pair_fallback(
        self, decoded: DecodedInvitation, alias: str, cause: Exception = None
    ) -> ConnRecord:
        their_did = decoded.sender_did
        if not (alias and is_peer_did(their_did)):
            raise InvitationAcceptanceError(
                "Invitation could not be accepted; direct pairing needs a peer "
                "DID and an alias"
            ) from cause
        return await self._pair(
            their_did,
            invitation_id=decoded.invitation_id,
            label=alias,
            alias=alias,
            protocol=ConnRecord.PROTOCOL_MANUAL,
        )

    async def _accept_structured(
        self, decoded: EdgeInvitation, alias: str, credential: Any
    ) -> ConnRecord:
        existing = await self._connection_for_invitation(decoded.invitation_id)
        if existing:
            return existing

        preview = await self._inspect(decoded)
        responder = self.responder
        if not responder:
            raise OutOfBandManagerError("No responder available to send the request")

        attachments = []
        if credential is not None:
            own = load_credential(credential)
            if own:
                attachments.append(credential_attachment(own, ATTACH_VC_PROOF_RESPONSE))
            else:
                LOGGER.warning("Credential to present is not usable; sending none")

        if not await self.ledger.find_by_invitation_id(decoded.invitation_id):
            await self._bookkeeping(
                "record accepted invitation",
                self.ledger.create_received_invitation_record(
                    decoded.invitation_id,
                    label=decoded.label,
                    inviter_did=decoded.sender_did,
                    invitation_url=decoded.text,
                    goal_code=decoded.goal_code,
                    has_vc_proof=preview.has_vc_proof,
                    vc_proof_type=preview.vc_proof_type,
                ),
            )

        my_did = await self._create_did("connection")
        request = ConnectionRequestMessage(
            from_did=my_did,
            to=[decoded.sender_did],
            thid=decoded.invitation_id,
            body=ConnectionRequestBody(
                goal_code=GOAL_CONNECT_WITH_CREDENTIAL,
                goal=GOAL_TEXT_REQUEST,
                label=self._profile.settings.get_str("default_label"),
                requests_attach=attachments,
            ),
        )
        await responder.send_message(
            self._profile, request, to_did=decoded.sender_did, from_did=my_did
        )
        await self._bookkeeping(
            "mark connection request sent",
            self.ledger.mark_request_sent(decoded.invitation_id, my_did),
        )

        revealed = preview.identity.revealed_data if preview.identity else None
        conn = await self._store_connection(
            ConnRecord(
                my_did=my_did,
                their_did=decoded.sender_did,
                their_label=connection_label(alias, revealed, decoded.label),
                their_role=ConnRecord.ROLE_INVITER,
                alias=alias,
                invitation_id=decoded.invitation_id,
                connection_protocol=ConnRecord.PROTOCOL_DIDEXCHANGE,
            )
        )

        if preview.pin_category and preview.is_verified:
            claim = await self.pins.claim_from_credential(
                preview.pin_category,
                preview.credential,
                decoded.sender_did,
            )
            if claim and self.pins.is_bound(
                claim, preview.credential, decoded.sender_did
            ):
                await self.pins.pin(preview.pin_category, claim)
            elif claim:
                LOGGER.warning(
                    "Not pinning %s identity %s: presented by unrelated DID %s",
                    preview.pin_category,
                    claim.did,
                    decoded.sender_did,
                )

        await self._bookkeeping(
            "mark connection established",
            self.ledger.mark_established(decoded.invitation_id),
        )
        return conn

    async def _pair(
        self,
        their_did: str,
        *,
        invitation_id: str = None,
        label: str = None,
        alias: str = None,
        protocol: str = ConnRecord.PROTOCOL_MANUAL,
    ) -> ConnRecord:
        """Pair directly with a DID, without a request or attachment processing."""
        if invitation_id:
            existing = await self._connection_for_invitation(invitation_id)
            if existing:
                return existing
        my_did = await self._create_did("connection")
        conn = await self._store_connection(
            ConnRecord(
                my_did=my_did,
                their_did=their_did,
                their_label=label or UNKNOWN_CONNECTION_LABEL,
                their_role=ConnRecord.ROLE_INVITER,
                alias=alias,
                invitation_id=invitation_id,
                connection_protocol=protocol,
            )
        )
        if invitation_id:
            if not await self.ledger.find_by_invitation_id(invitation_id):
                await self._bookkeeping(
                    "record paired invitation",
                    self.ledger.create_received_invitation_record(
                        invitation_id, label=label, inviter_did=their_did
                    ),
                )
            await self._bookkeeping(
                "mark connection established",
                self.ledger.mark_established(invitation_id),
            )
        LOGGER.info("Paired directly with %s as %s", their_did, conn.their_label)
        return conn

    async def _connection_for_invitation(
        self, invitation_id: Optional[str]
    ) -> Optional[ConnRecord]:
        if not invitation_id:
            return None
        async with self._profile.session() as session:
            found = await ConnRecord.query(session, {"invitation_id": invitation_id})
        return found[0] if found else None

    async def _store_connection(self, conn: ConnRecord) -> ConnRecord:
        """Save a connection; an already stored pair counts as success."""
        async with self._profile.transaction() as txn:
            existing = await ConnRecord.find_existing_connection(
                txn, conn.my_did, conn.their_did
            )
            if existing:
                LOGGER.info(
                    "Connection %s to %s already exists",
                    existing.connection_id,
                    existing.their_did,
                )
                return existing
            try:
                await conn.save(txn, reason="Established connection")
            except StorageDuplicateError:
                LOGGER.info("Connection to %s already stored", conn.their_did)
                return conn
            await txn.commit()
        return conn

    async def reject_invitation(self, invitation_id: str) -> InvitationRecord:
        """
        Decline a received invitation.

        Raises:
            StorageNotFoundError: If the invitation was never received

        """
        async with self._profile.session() as session:
            await InvitationRecord.retrieve_by_invitation_id(session, invitation_id)
        await self.ledger.mark_rejected_by_invitee(invitation_id)
        self.supervisor.clear()
        return await self.ledger.find_by_invitation_id(invitation_id)

    async def receive_connection_request(
        self, message: Union[ConnectionRequestMessage, Mapping]
    ) -> Optional[ConnectionRequestItem]:
        """
        Queue an inbound connection request against our invitation.

        Back-to-back repeats of the same event are dropped before they reach
        storage.

        Returns:
            The queued request, or None if it was a repeat or could not be queued

        Raises:
            OutOfBandManagerError: If the message is not a connection request

        """
        if not isinstance(message, ConnectionRequestMessage):
            try:
                message = ConnectionRequestMessage.deserialize(message)
            except BaseModelError as err:
                raise OutOfBandManagerError(
                    "Malformed connection request message"
                ) from err

        receiver = message.to[0] if message.to else ""
        key = f"{message.from_did or ''}-{receiver}-{message.body.label or ''}"
        if not self.recently_seen.check_and_add(key):
            LOGGER.info("Duplicate connection event ignored: %s", key)
            return None

        credential = extract(message.attachments).credential
        verification = None
        if credential:
            result = await self.validator.validate(credential, self.verifier)
            verification = derive_identity(credential, result).serialize()
            if not result.is_valid:
                LOGGER.warning(
                    "Connection request %s carries an unverified credential: %s",
                    message.id,
                    "; ".join(result.errors),
                )

        request_id = await self._bookkeeping(
            "queue connection request",
            self.queue.enqueue(message, credential, verification_result=verification),
        )
        if not request_id:
            return None
        if message.thid:
            await self._bookkeeping(
                "add connection request to invitation",
                self.ledger.add_connection_request(
                    message.thid, request_id, message.id
                ),
            )
        return await self.queue.get_request(request_id)

    async def accept_connection_request(self, request_id: str) -> ConnRecord:
        """
        Accept a queued connection request and store the connection.

        Raises:
            StorageNotFoundError: If there is no such request
            OutOfBandManagerError: If the request was already rejected

        """
        item = await self.queue.get_request(request_id)
        if item.state == ConnectionRequestItem.STATE_REJECTED:
            raise OutOfBandManagerError(f"Connection request {request_id} was rejected")
        if not item.from_did:
            raise OutOfBandManagerError(
                f"Connection request {request_id} names no requester DID"
            )

        record = None
        if item.invitation_id:
            record = await self.ledger.find_by_invitation_id(item.invitation_id)
        my_did = (
            record.inviter_did
            if record and record.inviter_did
            else await self._create_did("connection")
        )

        revealed = None
        if item.verification_result and item.verification_result.get("is_verified"):
            revealed = item.verification_result.get("revealed_data")
        conn = await self._store_connection(
            ConnRecord(
                my_did=my_did,
                their_did=item.from_did,
                their_label=connection_label(None, revealed, item.label),
                their_role=ConnRecord.ROLE_INVITEE,
                invitation_id=item.invitation_id,
                connection_protocol=ConnRecord.PROTOCOL_DIDEXCHANGE,
            )
        )

        await self._bookkeeping(
            "resolve connection request",
            self.queue.resolve(request_id, ConnectionRequestItem.STATE_ACCEPTED),
        )
        if item.invitation_id:
            await self._bookkeeping(
                "mark invitation connected",
                self.ledger.mark_connected(item.invitation_id, request_id),
            )
        return conn

    async def reject_connection_request(self, request_id: str) -> ConnectionRequestItem:
        """
        Reject a queued connection request.

        Raises:
            StorageNotFoundError: If there is no such request

        """
        item = await self.queue.resolve(request_id, ConnectionRequestItem.STATE_REJECTED)
        if item.invitation_id:
            await self._bookkeeping(
                "mark invitation rejected",
                self.ledger.mark_rejected(item.invitation_id, request_id),
            )
        return item
