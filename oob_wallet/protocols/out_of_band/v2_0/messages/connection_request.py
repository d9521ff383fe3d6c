"""A DID Exchange connection request sent in reply to an invitation."""

import json
import uuid
from typing import Sequence, Text

from marshmallow import EXCLUDE, ValidationError, fields, post_dump, pre_load

from .....messaging.decorators.attach_decorator import (
    AttachDecorator,
    AttachDecoratorSchema,
)
from .....messaging.models.base import BaseModel, BaseModelSchema
from .....messaging.valid import GENERIC_DID_EXAMPLE, UUID4_EXAMPLE
from ..message_types import (
    ACCEPT_DIDCOMM_V2,
    DIDEXCHANGE_REQUEST,
    GOAL_CONNECT_WITH_CREDENTIAL,
)
from .invitation import ATTACHMENT_FIELDS


class ConnectionRequestBody(BaseModel):
    """Body of a connection request; attachments travel inside the body."""

    class Meta:
        """ConnectionRequestBody metadata."""

        schema_class = "ConnectionRequestBodySchema"

    def __init__(
        self,
        *,
        goal_code: str = None,
        goal: str = None,
        label: str = None,
        accept: Sequence[Text] = None,
        requests_attach: Sequence[AttachDecorator] = None,
    ):
        """Initialize connection request body."""
        super().__init__()
        self.goal_code = goal_code
        self.goal = goal
        self.label = label
        self.accept = list(accept) if accept is not None else [ACCEPT_DIDCOMM_V2]
        self.requests_attach = list(requests_attach) if requests_attach else []


class ConnectionRequestBodySchema(BaseModelSchema):
    """ConnectionRequestBody schema."""

    class Meta:
        """ConnectionRequestBodySchema metadata."""

        model_class = ConnectionRequestBody
        unknown = EXCLUDE

    goal_code = fields.Str(
        required=False,
        metadata={"description": "Goal code", "example": GOAL_CONNECT_WITH_CREDENTIAL},
    )
    goal = fields.Str(
        required=False,
        metadata={
            "description": "Human readable goal",
            "example": "Connect and share my credential",
        },
    )
    label = fields.Str(
        required=False, metadata={"description": "Requester label", "example": "Bob"}
    )
    accept = fields.List(fields.Str(), required=False)
    requests_attach = fields.Nested(AttachDecoratorSchema, many=True, required=False)

    @post_dump
    def post_dump(self, data, **kwargs):
        """Post dump hook."""
        if "requests_attach" in data and not data["requests_attach"]:
            del data["requests_attach"]

        return data


class ConnectionRequestMessage(BaseModel):
    """A connection request threaded to the invitation that prompted it."""

    class Meta:
        """ConnectionRequestMessage metadata."""

        schema_class = "ConnectionRequestMessageSchema"
        message_type = DIDEXCHANGE_REQUEST

    def __init__(
        self,
        *,
        _id: str = None,
        _type: str = None,
        from_did: str = None,
        to: Sequence[str] = None,
        thid: str = None,
        body: ConnectionRequestBody = None,
        created_time: int = None,
    ):
        """
        Initialize connection request message.

        Args:
            _id: message identifier, a fresh uuid if not given
            _type: message type URI
            from_did: the requester DID
            to: recipient DIDs
            thid: thread identifier, the invitation identifier
            body: request body
            created_time: message creation time, epoch seconds

        """
        super().__init__()
        self._id = _id or str(uuid.uuid4())
        self._type = _type or self.Meta.message_type
        self.from_did = from_did
        self.to = list(to) if to else []
        self.thid = thid
        self.body = body or ConnectionRequestBody()
        self.created_time = created_time

    @property
    def id(self) -> str:
        """Accessor for the message identifier."""
        return self._id

    @property
    def attachments(self) -> Sequence[AttachDecorator]:
        """Accessor for the attachments carried in the body."""
        return self.body.requests_attach


class ConnectionRequestMessageSchema(BaseModelSchema):
    """ConnectionRequestMessage schema."""

    class Meta:
        """ConnectionRequestMessageSchema metadata."""

        model_class = ConnectionRequestMessage
        unknown = EXCLUDE

    _id = fields.Str(
        data_key="id",
        required=False,
        metadata={"description": "Message identifier", "example": UUID4_EXAMPLE},
    )
    _type = fields.Str(
        data_key="type",
        required=False,
        metadata={"description": "Message type", "example": DIDEXCHANGE_REQUEST},
    )
    from_did = fields.Str(
        data_key="from",
        required=False,
        metadata={"description": "Requester DID", "example": GENERIC_DID_EXAMPLE},
    )
    to = fields.List(fields.Str(), required=False)
    thid = fields.Str(
        required=False,
        metadata={"description": "Invitation identifier", "example": UUID4_EXAMPLE},
    )
    body = fields.Nested(ConnectionRequestBodySchema(), required=False)
    created_time = fields.Int(required=False)

    @pre_load
    def normalize_body(self, data, **kwargs):
        """Parse a string body and lift top-level legacy attachments into it."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if isinstance(data.get("to"), str):
            data["to"] = [data["to"]]
        body = data.get("body") or {}
        if isinstance(body, str):
            try:
                body = json.loads(body) if body.strip() else {}
            except ValueError as err:
                raise ValidationError("Message body is not valid JSON") from err
        body = dict(body)
        for name in ATTACHMENT_FIELDS:
            value = body.pop(name, None) or data.pop(name, None)
            if value and not body.get("requests_attach"):
                body["requests_attach"] = value
        data["body"] = body
        return data
