"""An out-of-band 2.0 invitation message."""

import uuid
from typing import Optional, Sequence, Text
from urllib.parse import parse_qs, urlparse

from marshmallow import EXCLUDE, fields, post_dump, pre_load

from .....messaging.decorators.attach_decorator import (
    AttachDecorator,
    AttachDecoratorSchema,
)
from .....messaging.models.base import BaseModel, BaseModelSchema
from .....messaging.valid import (
    GENERIC_DID_EXAMPLE,
    GENERIC_DID_VALIDATE,
    UUID4_EXAMPLE,
)
from .....wallet.util import bytes_to_b64
from ..message_types import (
    DEFAULT_ACCEPT,
    GOAL_CONNECT,
    HANDSHAKE_DIDEXCHANGE,
    INVITATION,
    OOB_QUERY_PARAMS,
)

# Container names for attachments, current name first
ATTACHMENT_FIELDS = ("requests_attach", "attachments", "requests~attach")


def query_payload(text: str) -> Optional[str]:
    """Return the invitation query parameter value carried by a URL, if any."""
    query = urlparse(text).query
    if not query and any(text.startswith(f"{param}=") for param in OOB_QUERY_PARAMS):
        query = text
    if not query:
        return None
    params = parse_qs(query)
    for param in OOB_QUERY_PARAMS:
        if params.get(param):
            # parse_qs reads "+" from standard base64 as a space
            return params[param][0].replace(" ", "+")
    return None


class InvitationBody(BaseModel):
    """The body of an out-of-band invitation."""

    class Meta:
        """InvitationBody metadata."""

        schema_class = "InvitationBodySchema"

    def __init__(
        self,
        *,
        goal_code: str = None,
        goal: str = None,
        label: str = None,
        accept: Sequence[Text] = None,
        handshake_protocols: Sequence[Text] = None,
        **kwargs,
    ):
        """Initialize invitation body."""
        super().__init__(**kwargs)
        self.goal_code = goal_code
        self.goal = goal
        self.label = label
        self.accept = list(accept) if accept is not None else list(DEFAULT_ACCEPT)
        self.handshake_protocols = (
            list(handshake_protocols)
            if handshake_protocols is not None
            else [HANDSHAKE_DIDEXCHANGE]
        )


class InvitationBodySchema(BaseModelSchema):
    """InvitationBody schema."""

    class Meta:
        """InvitationBodySchema metadata."""

        model_class = InvitationBody
        unknown = EXCLUDE

    goal_code = fields.Str(
        required=False,
        metadata={"description": "Goal code", "example": GOAL_CONNECT},
    )
    goal = fields.Str(
        required=False,
        metadata={
            "description": "Human readable goal",
            "example": "To connect and exchange credentials",
        },
    )
    label = fields.Str(
        required=False, metadata={"description": "Inviter label", "example": "Alice"}
    )
    accept = fields.List(
        fields.Str(),
        required=False,
        metadata={
            "description": "Accepted media types in order of preference",
            "example": list(DEFAULT_ACCEPT),
        },
    )
    handshake_protocols = fields.List(
        fields.Str(),
        required=False,
        metadata={
            "description": "Handshake protocols",
            "example": [HANDSHAKE_DIDEXCHANGE],
        },
    )


class InvitationMessage(BaseModel):
    """Class representing an out-of-band 2.0 invitation message."""

    class Meta:
        """InvitationMessage metadata."""

        schema_class = "InvitationMessageSchema"
        message_type = INVITATION

    def __init__(
        self,
        *,
        _id: str = None,
        _type: str = None,
        from_did: str = None,
        body: InvitationBody = None,
        requests_attach: Sequence[AttachDecorator] = None,
        **kwargs,
    ):
        """
        Initialize invitation message object.

        Args:
            _id: invitation identifier, a fresh uuid if not given
            _type: message type URI
            from_did: the inviter DID
            body: invitation body
            requests_attach: request attachments

        """
        super().__init__(**kwargs)
        self._id = _id or str(uuid.uuid4())
        self._type = _type or self.Meta.message_type
        self.from_did = from_did
        self.body = body or InvitationBody()
        self.requests_attach = list(requests_attach) if requests_attach else []

    @property
    def id(self) -> str:
        """Accessor for the invitation identifier."""
        return self._id

    @property
    def goal_code(self) -> Optional[str]:
        """Accessor for the body goal code."""
        return self.body.goal_code

    def to_url(self, base_url: str = None) -> str:
        """
        Convert an invitation message to URL format for sharing.

        Returns:
            An invite url, or a bare `?_oob=` query if no base url is given

        """
        oob = bytes_to_b64(self.to_json().encode("utf-8"), urlsafe=True, pad=False)
        return f"{base_url or ''}?{OOB_QUERY_PARAMS[0]}={oob}"


class InvitationMessageSchema(BaseModelSchema):
    """InvitationMessage schema."""

    class Meta:
        """InvitationMessage schema metadata."""

        model_class = InvitationMessage
        unknown = EXCLUDE

    _id = fields.Str(
        data_key="id",
        required=False,
        metadata={"description": "Invitation identifier", "example": UUID4_EXAMPLE},
    )
    _type = fields.Str(
        data_key="type",
        required=False,
        metadata={"description": "Message type", "example": INVITATION},
    )
    from_did = fields.Str(
        data_key="from",
        required=True,
        validate=GENERIC_DID_VALIDATE,
        metadata={"description": "Inviter DID", "example": GENERIC_DID_EXAMPLE},
    )
    body = fields.Nested(InvitationBodySchema(), required=False)
    requests_attach = fields.Nested(
        AttachDecoratorSchema,
        required=False,
        many=True,
        metadata={"description": "Optional request attachments"},
    )

    @pre_load
    def merge_attachment_fields(self, data, **kwargs):
        """Read attachments from the current or a legacy container name."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        found = None
        for name in ATTACHMENT_FIELDS:
            value = data.pop(name, None)
            if found is None and value:
                found = value
        if found:
            data["requests_attach"] = found
        return data

    @post_dump
    def post_dump(self, data, **kwargs):
        """Post dump hook."""
        if "requests_attach" in data and not data["requests_attach"]:
            del data["requests_attach"]

        return data
