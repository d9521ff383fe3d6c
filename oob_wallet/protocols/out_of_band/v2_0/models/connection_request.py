"""Queued inbound connection request awaiting a decision."""

from typing import Any, Mapping, Optional

from marshmallow import fields

from .....messaging.models.base_record import BaseRecord, BaseRecordSchema
from .....messaging.util import datetime_now, str_to_datetime
from .....messaging.valid import (
    GENERIC_DID_EXAMPLE,
    ISO8601_DATETIME_EXAMPLE,
    UUID4_EXAMPLE,
    one_of,
)


class ConnectionRequestItem(BaseRecord):
    """A connection request held for the user to accept or reject."""

    class Meta:
        """ConnectionRequestItem metadata."""

        schema_class = "ConnectionRequestItemSchema"

    RECORD_TYPE = "connection_request"
    RECORD_ID_NAME = "request_id"
    RECORD_TOPIC = "connection_requests"
    TAG_NAMES = {"message_id", "invitation_id", "from_did", "state"}

    STATE_PENDING = "pending"
    STATE_ACCEPTED = "accepted"
    STATE_REJECTED = "rejected"
    STATES = (STATE_PENDING, STATE_ACCEPTED, STATE_REJECTED)

    def __init__(
        self,
        *,
        request_id: str = None,
        message_id: str = None,
        invitation_id: str = None,
        from_did: str = None,
        label: str = None,
        message: Mapping[str, Any] = None,
        attached_credential: Mapping[str, Any] = None,
        state: str = None,
        expires_at: str = None,
        resolved_at: str = None,
        verification_result: Mapping[str, Any] = None,
        **kwargs,
    ):
        """Initialize a new ConnectionRequestItem."""
        super().__init__(request_id, state or self.STATE_PENDING, **kwargs)
        self.message_id = message_id
        self.invitation_id = invitation_id
        self.from_did = from_did
        self.label = label
        self.message = dict(message) if message else None
        self.attached_credential = (
            dict(attached_credential) if attached_credential else None
        )
        self.expires_at = expires_at
        self.resolved_at = resolved_at
        self.verification_result = (
            dict(verification_result) if verification_result else None
        )

    @property
    def request_id(self) -> str:
        """Accessor for the ID associated with this request."""
        return self._id

    @property
    def is_pending(self) -> bool:
        """Whether the request still awaits a decision."""
        return self.state == self.STATE_PENDING

    def is_expired(self, now=None) -> bool:
        """Whether the request is past its expiry time."""
        if not self.expires_at:
            return False
        return str_to_datetime(self.expires_at) < (now or datetime_now())

    @property
    def record_value(self) -> dict:
        """Accessor for the JSON record value generated for this request."""
        return {
            prop: getattr(self, prop)
            for prop in (
                "label",
                "message",
                "attached_credential",
                "expires_at",
                "resolved_at",
                "verification_result",
            )
        }

    @property
    def dedup_key(self) -> Optional[tuple]:
        """Identity of the request for duplicate detection beyond its message id."""
        if not self.from_did:
            return None
        return (self.from_did, self.invitation_id)


class ConnectionRequestItemSchema(BaseRecordSchema):
    """Schema to allow serialization/deserialization of connection requests."""

    class Meta:
        """ConnectionRequestItemSchema metadata."""

        model_class = ConnectionRequestItem

    request_id = fields.Str(
        required=False,
        metadata={"description": "Request identifier", "example": UUID4_EXAMPLE},
    )
    message_id = fields.Str(
        required=True,
        metadata={"description": "Request message identifier", "example": UUID4_EXAMPLE},
    )
    invitation_id = fields.Str(
        required=False,
        metadata={
            "description": "Invitation the request answers",
            "example": UUID4_EXAMPLE,
        },
    )
    from_did = fields.Str(
        required=False,
        metadata={"description": "Requester DID", "example": GENERIC_DID_EXAMPLE},
    )
    label = fields.Str(
        required=False, metadata={"description": "Requester label", "example": "Bob"}
    )
    message = fields.Dict(
        required=False, metadata={"description": "The request message as received"}
    )
    attached_credential = fields.Dict(
        required=False,
        metadata={"description": "Credential presented with the request"},
    )
    state = fields.Str(
        required=False,
        validate=one_of(ConnectionRequestItem.STATES),
        metadata={
            "description": "Request state",
            "example": ConnectionRequestItem.STATE_PENDING,
        },
    )
    expires_at = fields.Str(
        required=False,
        metadata={"description": "Expiry time", "example": ISO8601_DATETIME_EXAMPLE},
    )
    resolved_at = fields.Str(
        required=False,
        metadata={
            "description": "Time the request was accepted or rejected",
            "example": ISO8601_DATETIME_EXAMPLE,
        },
    )
    verification_result = fields.Dict(
        required=False,
        metadata={"description": "Validation outcome of the attached credential"},
    )
