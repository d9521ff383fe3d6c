"""A bidirectional DID pairing produced by an accepted invitation."""

from typing import Optional

from marshmallow import fields

from ...core.profile import ProfileSession
from ...messaging.models.base_record import BaseRecord, BaseRecordSchema
from ...messaging.valid import (
    GENERIC_DID_EXAMPLE,
    GENERIC_DID_VALIDATE,
    UUID4_EXAMPLE,
    one_of,
)
from ...storage.error import StorageDuplicateError, StorageNotFoundError


class ConnRecord(BaseRecord):
    """Represents a connection between this wallet and a correspondent."""

    class Meta:
        """ConnRecord metadata."""

        schema_class = "ConnRecordSchema"

    RECORD_TYPE = "connection"
    RECORD_ID_NAME = "connection_id"
    RECORD_TOPIC = "connections"
    TAG_NAMES = {"my_did", "their_did", "invitation_id", "state"}

    STATE_ACTIVE = "active"

    ROLE_INVITER = "inviter"
    ROLE_INVITEE = "invitee"

    PROTOCOL_DIDEXCHANGE = "didexchange/1.0"
    PROTOCOL_CONNECTIONS = "connections/1.0"
    PROTOCOL_MANUAL = "manual"

    def __init__(
        self,
        *,
        connection_id: str = None,
        my_did: str = None,
        their_did: str = None,
        their_label: str = None,
        their_role: str = None,
        alias: str = None,
        invitation_id: str = None,
        connection_protocol: str = None,
        state: str = None,
        **kwargs,
    ):
        """Initialize a new ConnRecord."""
        super().__init__(connection_id, state or self.STATE_ACTIVE, **kwargs)
        self.my_did = my_did
        self.their_did = their_did
        self.their_label = their_label
        self.their_role = their_role
        self.alias = alias
        self.invitation_id = invitation_id
        self.connection_protocol = connection_protocol

    @property
    def connection_id(self) -> str:
        """Accessor for the ID associated with this connection."""
        return self._id

    @property
    def record_value(self) -> dict:
        """Accessor for the JSON record value properties for this connection."""
        return {
            prop: getattr(self, prop)
            for prop in ("their_label", "their_role", "alias", "connection_protocol")
        }

    @classmethod
    async def find_existing_connection(
        cls, session: ProfileSession, my_did: str, their_did: str
    ) -> Optional["ConnRecord"]:
        """Return the stored connection for a DID pair, if any."""
        try:
            return await cls.retrieve_by_tag_filter(
                session, {"my_did": my_did, "their_did": their_did}
            )
        except StorageNotFoundError:
            return None
        except StorageDuplicateError:
            found = await cls.query(session, {"my_did": my_did, "their_did": their_did})
            return found[0]

    @classmethod
    async def retrieve_by_did(
        cls, session: ProfileSession, their_did: str
    ) -> "ConnRecord":
        """Retrieve the connection to a correspondent DID.

        Raises:
            StorageNotFoundError: If there is no such connection

        """
        return await cls.retrieve_by_tag_filter(session, {"their_did": their_did})


class ConnRecordSchema(BaseRecordSchema):
    """Schema to allow serialization/deserialization of connection records."""

    class Meta:
        """ConnRecordSchema metadata."""

        model_class = ConnRecord

    connection_id = fields.Str(
        required=False,
        metadata={"description": "Connection identifier", "example": UUID4_EXAMPLE},
    )
    my_did = fields.Str(
        required=False,
        validate=GENERIC_DID_VALIDATE,
        metadata={
            "description": "Our DID for connection",
            "example": GENERIC_DID_EXAMPLE,
        },
    )
    their_did = fields.Str(
        required=False,
        validate=GENERIC_DID_VALIDATE,
        metadata={
            "description": "Their DID for connection",
            "example": GENERIC_DID_EXAMPLE,
        },
    )
    their_label = fields.Str(
        required=False,
        metadata={"description": "Display label for connection", "example": "Bob"},
    )
    their_role = fields.Str(
        required=False,
        validate=one_of((ConnRecord.ROLE_INVITER, ConnRecord.ROLE_INVITEE)),
        metadata={
            "description": "Their role in the invitation exchange",
            "example": ConnRecord.ROLE_INVITER,
        },
    )
    alias = fields.Str(
        required=False,
        metadata={"description": "Optional alias for connection", "example": "Bob"},
    )
    invitation_id = fields.Str(
        required=False,
        metadata={
            "description": "Identifier of the invitation that led to this connection",
            "example": UUID4_EXAMPLE,
        },
    )
    connection_protocol = fields.Str(
        required=False,
        validate=one_of(
            (
                ConnRecord.PROTOCOL_DIDEXCHANGE,
                ConnRecord.PROTOCOL_CONNECTIONS,
                ConnRecord.PROTOCOL_MANUAL,
            )
        ),
        metadata={
            "description": "Protocol used to establish the connection",
            "example": ConnRecord.PROTOCOL_DIDEXCHANGE,
        },
    )
