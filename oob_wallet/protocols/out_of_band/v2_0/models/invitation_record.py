"""Ledger record tracking one invitation through its lifecycle."""

from typing import Any, Mapping, Optional, Sequence

from marshmallow import fields

from .....core.profile import ProfileSession
from .....messaging.models.base_record import BaseRecord, BaseRecordSchema
from .....messaging.models.openapi import OpenAPISchema
from .....messaging.valid import (
    GENERIC_DID_EXAMPLE,
    ISO8601_DATETIME_EXAMPLE,
    UUID4_EXAMPLE,
    one_of,
)
from .....storage.error import StorageNotFoundError
from ..message_types import GOAL_CONNECT


class InvitationRecord(BaseRecord):
    """Represents an invitation as seen by its inviter or its invitee."""

    class Meta:
        """InvitationRecord metadata."""

        schema_class = "InvitationRecordSchema"

    RECORD_TYPE = "oob_invitation"
    RECORD_ID_NAME = "invitation_record_id"
    RECORD_TOPIC = "out_of_band"
    TAG_NAMES = {"invitation_id", "role", "state"}

    ROLE_INVITER = "inviter"
    ROLE_INVITEE = "invitee"
    ROLES = (ROLE_INVITER, ROLE_INVITEE)

    # inviter side
    STATE_GENERATED = "invitation-generated"
    STATE_REQUESTED = "connection-requested"
    STATE_CONNECTED = "connected"
    STATE_REJECTED = "rejected"

    # invitee side
    STATE_RECEIVED = "invitation-received"
    STATE_PREVIEWED = "invitation-previewed"
    STATE_REQUEST_SENT = "connection-request-sent"
    STATE_ESTABLISHED = "connection-established"
    STATE_INVITATION_REJECTED = "invitation-rejected"

    STATE_ORDER = {
        ROLE_INVITER: (STATE_GENERATED, STATE_REQUESTED),
        ROLE_INVITEE: (STATE_RECEIVED, STATE_PREVIEWED, STATE_REQUEST_SENT),
    }
    TERMINAL_STATES = {
        ROLE_INVITER: (STATE_CONNECTED, STATE_REJECTED),
        ROLE_INVITEE: (STATE_ESTABLISHED, STATE_INVITATION_REJECTED),
    }
    STATES = (
        STATE_GENERATED,
        STATE_REQUESTED,
        STATE_CONNECTED,
        STATE_REJECTED,
        STATE_RECEIVED,
        STATE_PREVIEWED,
        STATE_REQUEST_SENT,
        STATE_ESTABLISHED,
        STATE_INVITATION_REJECTED,
    )

    REQUEST_PENDING = "pending"
    REQUEST_ACCEPTED = "accepted"
    REQUEST_REJECTED = "rejected"

    def __init__(
        self,
        *,
        invitation_record_id: str = None,
        invitation_id: str = None,
        role: str = None,
        state: str = None,
        label: str = None,
        inviter_did: str = None,
        invitee_did: str = None,
        invitation_url: str = None,
        goal_code: str = None,
        pending_requests: Sequence[Mapping[str, Any]] = None,
        previewed_at: str = None,
        request_sent_at: str = None,
        accepted_at: str = None,
        rejected_at: str = None,
        has_vc_proof: bool = False,
        vc_proof_type: str = None,
        **kwargs,
    ):
        """Initialize a new InvitationRecord."""
        super().__init__(invitation_record_id, state, **kwargs)
        self.invitation_id = invitation_id
        self.role = role
        self.label = label
        self.inviter_did = inviter_did
        self.invitee_did = invitee_did
        self.invitation_url = invitation_url
        self.goal_code = goal_code
        self.pending_requests = [dict(req) for req in pending_requests or ()]
        self.previewed_at = previewed_at
        self.request_sent_at = request_sent_at
        self.accepted_at = accepted_at
        self.rejected_at = rejected_at
        self.has_vc_proof = has_vc_proof
        self.vc_proof_type = vc_proof_type

    @property
    def invitation_record_id(self) -> str:
        """Accessor for the ID associated with this record."""
        return self._id

    @property
    def is_terminal(self) -> bool:
        """Whether the record has reached a final state."""
        return self.state in self.TERMINAL_STATES.get(self.role, ())

    def can_advance_to(self, state: str) -> bool:
        """
        Check that a transition moves strictly forward for this role.

        Terminal states are sinks; any non-terminal state may move to a
        terminal state of the same role.
        """
        if self.is_terminal:
            return False
        if state in self.TERMINAL_STATES.get(self.role, ()):
            return True
        order = self.STATE_ORDER.get(self.role, ())
        if state not in order or self.state not in order:
            return False
        return order.index(state) > order.index(self.state)

    def pending_request(self, request_id: str) -> Optional[dict]:
        """Find a connection request entry by request id."""
        for entry in self.pending_requests:
            if entry.get("request_id") == request_id:
                return entry
        return None

    @property
    def record_value(self) -> dict:
        """Accessor for the JSON record value generated for this record."""
        return {
            prop: getattr(self, prop)
            for prop in (
                "label",
                "inviter_did",
                "invitee_did",
                "invitation_url",
                "goal_code",
                "pending_requests",
                "previewed_at",
                "request_sent_at",
                "accepted_at",
                "rejected_at",
                "has_vc_proof",
                "vc_proof_type",
            )
        }

    @classmethod
    async def retrieve_by_invitation_id(
        cls,
        session: ProfileSession,
        invitation_id: str,
        *,
        for_update: bool = False,
    ) -> "InvitationRecord":
        """
        Retrieve the record for an invitation id.

        Raises:
            StorageNotFoundError: If no record exists for the invitation

        """
        return await cls.retrieve_by_tag_filter(
            session, {"invitation_id": invitation_id}, for_update=for_update
        )

    @classmethod
    async def find_by_invitation_id(
        cls, session: ProfileSession, invitation_id: str
    ) -> Optional["InvitationRecord"]:
        """Return the record for an invitation id, if any."""
        try:
            return await cls.retrieve_by_invitation_id(session, invitation_id)
        except StorageNotFoundError:
            return None


class PendingRequestSchema(OpenAPISchema):
    """Summary of a connection request held on an invitation record."""

    request_id = fields.Str(
        required=True,
        metadata={"description": "Connection request identifier"},
    )
    message_id = fields.Str(
        required=False,
        metadata={"description": "Request message identifier"},
    )
    state = fields.Str(
        required=True,
        validate=one_of(
            (
                InvitationRecord.REQUEST_PENDING,
                InvitationRecord.REQUEST_ACCEPTED,
                InvitationRecord.REQUEST_REJECTED,
            )
        ),
        metadata={"example": InvitationRecord.REQUEST_PENDING},
    )


class InvitationRecordSchema(BaseRecordSchema):
    """Schema to allow serialization/deserialization of invitation records."""

    class Meta:
        """InvitationRecordSchema metadata."""

        model_class = InvitationRecord

    invitation_record_id = fields.Str(
        required=False,
        metadata={"description": "Record identifier", "example": UUID4_EXAMPLE},
    )
    invitation_id = fields.Str(
        required=True,
        metadata={"description": "Invitation identifier", "example": UUID4_EXAMPLE},
    )
    role = fields.Str(
        required=True,
        validate=one_of(InvitationRecord.ROLES),
        metadata={
            "description": "Our role in the invitation",
            "example": InvitationRecord.ROLE_INVITER,
        },
    )
    state = fields.Str(
        required=True,
        validate=one_of(InvitationRecord.STATES),
        metadata={
            "description": "Invitation lifecycle state",
            "example": InvitationRecord.STATE_GENERATED,
        },
    )
    label = fields.Str(
        required=False, metadata={"description": "Inviter label", "example": "Alice"}
    )
    inviter_did = fields.Str(
        required=False,
        metadata={"description": "Inviter DID", "example": GENERIC_DID_EXAMPLE},
    )
    invitee_did = fields.Str(
        required=False,
        metadata={"description": "Invitee DID", "example": GENERIC_DID_EXAMPLE},
    )
    invitation_url = fields.Str(
        required=False,
        metadata={
            "description": "Invitation URL",
            "example": "https://wallet.example.org/connect?_oob=eyJ0eXBlIjoi...",
        },
    )
    goal_code = fields.Str(
        required=False, metadata={"description": "Goal code", "example": GOAL_CONNECT}
    )
    pending_requests = fields.List(
        fields.Nested(PendingRequestSchema()),
        required=False,
        metadata={"description": "Connection requests received for this invitation"},
    )
    previewed_at = fields.Str(
        required=False,
        metadata={"description": "Time of preview", "example": ISO8601_DATETIME_EXAMPLE},
    )
    request_sent_at = fields.Str(
        required=False,
        metadata={
            "description": "Time the connection request was sent",
            "example": ISO8601_DATETIME_EXAMPLE,
        },
    )
    accepted_at = fields.Str(
        required=False,
        metadata={
            "description": "Time the connection was accepted",
            "example": ISO8601_DATETIME_EXAMPLE,
        },
    )
    rejected_at = fields.Str(
        required=False,
        metadata={
            "description": "Time the invitation was rejected",
            "example": ISO8601_DATETIME_EXAMPLE,
        },
    )
    has_vc_proof = fields.Bool(
        required=False,
        metadata={"description": "Invitation carried a verified credential proof"},
    )
    vc_proof_type = fields.Str(
        required=False,
        metadata={"description": "Format of the attached proof", "example": "JWT"},
    )
