"""
Encode invitations for transport and classify whatever text comes back.

Every input decodes to exactly one `DecodedInvitation` kind. Malformed or
unrecognised input becomes a `RawIdentifier` rather than an error, so a
scanned string always yields something the manager can act on.
"""

import json
import logging
from typing import Any, Mapping, Optional, Sequence

from ....messaging.decorators.attach_decorator import AttachDecorator
from ....messaging.models.base import BaseModelError
from ....messaging.valid import DIDValidation
from ....wallet.util import b64_to_bytes
from .message_types import (
    COUNTERPARTY_GOAL,
    COUNTERPARTY_GOAL_MARKER,
    INVITATION,
    LEGACY_INVITATION_TYPES,
)
from .messages.invitation import (
    ATTACHMENT_FIELDS,
    InvitationBody,
    InvitationMessage,
    query_payload,
)

LOGGER = logging.getLogger(__name__)


class DecodedInvitation:
    """Base class for the kinds of decoded invitation."""

    KIND: str = None

    def __init__(self, text: str):
        """Initialize with the transport text the invitation was decoded from."""
        self.text = text

    @property
    def kind(self) -> str:
        """Dispatch key for this invitation kind."""
        return self.KIND

    @property
    def invitation_id(self) -> Optional[str]:
        """Correlation identifier of the invitation."""
        return None

    @property
    def sender_did(self) -> Optional[str]:
        """DID of the inviting party."""
        return None

    @property
    def goal_code(self) -> Optional[str]:
        """Goal code, if the invitation carries one."""
        return None

    @property
    def goal(self) -> Optional[str]:
        """Human readable goal, if the invitation carries one."""
        return None

    @property
    def label(self) -> Optional[str]:
        """Inviter label, if the invitation carries one."""
        return None

    @property
    def attachments(self) -> Sequence[Any]:
        """Attachments carried by the invitation."""
        return []

    @property
    def raw(self) -> Any:
        """The decoded payload."""
        return self.text

    def __repr__(self) -> str:
        """Get a human readable string."""
        return "<{}(id={})>".format(self.__class__.__name__, self.invitation_id)


class RawIdentifier(DecodedInvitation):
    """A bare identifier, or input that could not be decoded."""

    KIND = "raw"

    def __init__(self, text: str, identifier: str = None):
        """Initialize with the identifier, defaulting to the stripped text."""
        super().__init__(text)
        self.identifier = (identifier if identifier is not None else text or "").strip()

    @property
    def invitation_id(self) -> Optional[str]:
        """The identifier stands in for an invitation id."""
        return self.identifier or None

    @property
    def sender_did(self) -> Optional[str]:
        """The identifier itself when it is a DID."""
        return self.identifier if self.is_did else None

    @property
    def is_did(self) -> bool:
        """Whether the identifier is syntactically a DID."""
        return bool(DIDValidation.PATTERN.match(self.identifier))

    @property
    def is_peer_did(self) -> bool:
        """Whether the identifier looks like a bare peer DID."""
        prefix = "did:peer:"
        return self.identifier.startswith(prefix) and len(self.identifier) > len(prefix)


class LegacyInvitation(DecodedInvitation):
    """A connections/1.0 invitation."""

    KIND = "legacy"

    def __init__(self, text: str, payload: Mapping):
        """Initialize with the decoded invitation dict."""
        super().__init__(text)
        self.payload = dict(payload)

    @property
    def invitation_id(self) -> Optional[str]:
        """Invitation `@id`."""
        return self.payload.get("@id") or self.payload.get("id")

    @property
    def sender_did(self) -> Optional[str]:
        """The invitation DID, or the first recipient key."""
        keys = self.payload.get("recipientKeys") or []
        return self.payload.get("did") or (keys[0] if keys else None)

    @property
    def label(self) -> Optional[str]:
        """Inviter label."""
        return self.payload.get("label")

    @property
    def goal_code(self) -> Optional[str]:
        """Goal code, rarely present on this kind."""
        return self.payload.get("goal_code")

    @property
    def goal(self) -> Optional[str]:
        """Human readable goal, rarely present on this kind."""
        return self.payload.get("goal")

    @property
    def attachments(self) -> Sequence[Any]:
        """Attachments from the first populated container name."""
        for name in ATTACHMENT_FIELDS:
            if self.payload.get(name):
                return list(self.payload[name])
        return []

    @property
    def raw(self) -> Any:
        """The decoded payload."""
        return self.payload


class EdgeInvitation(DecodedInvitation):
    """An out-of-band 2.0 invitation from another edge wallet."""

    KIND = "edge"

    def __init__(self, text: str, message: InvitationMessage):
        """Initialize with the deserialized invitation message."""
        super().__init__(text)
        self.message = message

    @property
    def invitation_id(self) -> Optional[str]:
        """Invitation `id`."""
        return self.message.id

    @property
    def sender_did(self) -> Optional[str]:
        """Invitation `from`."""
        return self.message.from_did

    @property
    def goal_code(self) -> Optional[str]:
        """Body goal code."""
        return self.message.body.goal_code

    @property
    def goal(self) -> Optional[str]:
        """Body goal."""
        return self.message.body.goal

    @property
    def label(self) -> Optional[str]:
        """Body label."""
        return self.message.body.label

    @property
    def attachments(self) -> Sequence[AttachDecorator]:
        """Request attachments."""
        return self.message.requests_attach

    @property
    def raw(self) -> Any:
        """The decoded payload."""
        return self.message.serialize()


class CounterpartyInvitation(EdgeInvitation):
    """An out-of-band 2.0 invitation from the certification authority service."""

    KIND = "counterparty"

    @staticmethod
    def matches(message: InvitationMessage) -> bool:
        """Recognise the certification authority by its goal text."""
        goal = message.body.goal or ""
        return goal == COUNTERPARTY_GOAL or COUNTERPARTY_GOAL_MARKER in goal.lower()


def classify(payload: Any, text: str) -> DecodedInvitation:
    """
    Assign a decoded payload to exactly one invitation kind.

    Args:
        payload: The JSON payload recovered from the text, or None
        text: The original transport text

    Returns:
        The decoded invitation; `RawIdentifier` when nothing else fits

    """
    if not isinstance(payload, Mapping):
        return RawIdentifier(text)

    if payload.get("@type") in LEGACY_INVITATION_TYPES:
        return LegacyInvitation(text, payload)

    if payload.get("type") == INVITATION or (
        "from" in payload and "body" in payload
    ):
        try:
            message = InvitationMessage.deserialize(payload)
        except BaseModelError as err:
            LOGGER.warning("Malformed out-of-band invitation: %s", err)
            return RawIdentifier(text)
        if CounterpartyInvitation.matches(message):
            return CounterpartyInvitation(text, message)
        return EdgeInvitation(text, message)

    LOGGER.debug("Unrecognised invitation payload keys: %s", sorted(payload))
    return RawIdentifier(text)


def _b64_json(value: str) -> Any:
    try:
        return json.loads(b64_to_bytes(value.strip(), urlsafe=True))
    except (TypeError, ValueError):
        return None


def decode(text: str) -> DecodedInvitation:
    """
    Decode transport text into an invitation; never raises.

    Accepted forms, tried in order: a URL or bare query carrying `_oob`,
    `oob` or `c_i`, raw JSON, and a bare base64 payload. A query value
    holding a DID is a raw identifier.
    """
    text = (text or "").strip()
    if not text:
        return RawIdentifier(text)

    value = query_payload(text)
    if value:
        if value.startswith("did:"):
            return RawIdentifier(text, value)
        return classify(_b64_json(value), text)

    if text.startswith("{"):
        try:
            return classify(json.loads(text), text)
        except ValueError:
            return RawIdentifier(text)

    if text.startswith("did:"):
        return RawIdentifier(text)

    return classify(_b64_json(text), text)


def build_invitation(
    goal_code: str,
    sender_did: str,
    attachments: Sequence[AttachDecorator] = None,
    *,
    goal: str = None,
    label: str = None,
) -> InvitationMessage:
    """Build an out-of-band 2.0 invitation message."""
    return InvitationMessage(
        from_did=sender_did,
        body=InvitationBody(goal_code=goal_code, goal=goal, label=label),
        requests_attach=attachments,
    )


def encode(
    goal_code: str,
    sender_did: str,
    attachments: Sequence[AttachDecorator] = None,
    *,
    goal: str = None,
    label: str = None,
    base_url: str = None,
) -> str:
    """
    Encode a new invitation as a shareable URL.

    Returns:
        `<base_url>?_oob=<base64url(JSON)>`

    """
    invitation = build_invitation(
        goal_code, sender_did, attachments, goal=goal, label=label
    )
    return invitation.to_url(base_url)
