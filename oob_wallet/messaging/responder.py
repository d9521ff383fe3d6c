"""
A message responder.

The responder is provided to the protocol manager to hand outbound DIDComm
messages to whatever transport the wallet is deployed with.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import List, Tuple, Union

from ..core.profile import Profile
from .models.base import BaseModel

LOGGER = logging.getLogger(__name__)

OUTBOUND_MESSAGE_TOPIC = "oob_wallet::outbound::message"


class ResponderError(Exception):
    """Responder error."""


class BaseResponder(ABC):
    """Interface for message handlers to send responses."""

    @staticmethod
    def serialize_message(message: Union[BaseModel, dict, str]) -> str:
        """Render an outbound message as a JSON string."""
        if isinstance(message, BaseModel):
            return message.to_json()
        if isinstance(message, dict):
            return json.dumps(message)
        return message

    @abstractmethod
    async def send_message(
        self,
        profile: Profile,
        message: Union[BaseModel, dict, str],
        *,
        to_did: str,
        from_did: str = None,
    ):
        """
        Send an outbound message to a peer DID.

        Args:
            profile: The wallet profile sending the message
            message: The message to send
            to_did: The recipient DID
            from_did: The sender DID

        Raises:
            ResponderError: If the message could not be handed off

        """


class EventResponder(BaseResponder):
    """Responder that publishes outbound messages on the event bus.

    A transport plugin subscribes to `OUTBOUND_MESSAGE_TOPIC` and performs
    the delivery.
    """

    async def send_message(
        self,
        profile: Profile,
        message: Union[BaseModel, dict, str],
        *,
        to_did: str,
        from_did: str = None,
    ):
        """Publish the outbound message for the transport layer."""
        LOGGER.debug("Queueing outbound message to %s", to_did)
        await profile.notify(
            OUTBOUND_MESSAGE_TOPIC,
            {
                "to": to_did,
                "from": from_did,
                "message": self.serialize_message(message),
            },
        )


class MockResponder(BaseResponder):
    """Mock responder implementation for use by tests."""

    def __init__(self):
        """Initialize the mock responder."""
        self.messages: List[Tuple[str, dict]] = []

    async def send_message(
        self,
        profile: Profile,
        message: Union[BaseModel, dict, str],
        *,
        to_did: str,
        from_did: str = None,
    ):
        """Record the outbound message."""
        self.messages.append(
            (self.serialize_message(message), {"to": to_did, "from": from_did})
        )
