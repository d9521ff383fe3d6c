"""Trust-on-first-use identity pin record."""

from marshmallow import fields

from ...messaging.models.base_record import BaseRecord, BaseRecordSchema
from ...messaging.valid import (
    GENERIC_DID_EXAMPLE,
    GENERIC_DID_VALIDATE,
    UUID4_EXAMPLE,
    one_of,
)


class PinRecord(BaseRecord):
    """The pinned identity of a certification authority or company."""

    class Meta:
        """PinRecord metadata."""

        schema_class = "PinRecordSchema"

    RECORD_TYPE = "identity_pin"
    RECORD_ID_NAME = "pin_id"
    RECORD_TOPIC = "identity_pins"
    TAG_NAMES = {"category", "did", "state"}

    CATEGORY_CA = "ca"
    CATEGORY_COMPANY = "company"
    CATEGORIES = (CATEGORY_CA, CATEGORY_COMPANY)

    STATE_ACTIVE = "active"

    def __init__(
        self,
        *,
        pin_id: str = None,
        category: str = None,
        did: str = None,
        display_name: str = None,
        registration_number: str = None,
        jurisdiction: str = None,
        website: str = None,
        credential_hash: str = None,
        state: str = None,
        **kwargs,
    ):
        """Initialize a new PinRecord."""
        super().__init__(pin_id, state or self.STATE_ACTIVE, **kwargs)
        self.category = category
        self.did = did
        self.display_name = display_name
        self.registration_number = registration_number
        self.jurisdiction = jurisdiction
        self.website = website
        self.credential_hash = credential_hash

    @property
    def pin_id(self) -> str:
        """Accessor for the ID associated with this pin."""
        return self._id

    @property
    def record_value(self) -> dict:
        """Accessor for the JSON record value generated for this pin."""
        return {
            prop: getattr(self, prop)
            for prop in (
                "display_name",
                "registration_number",
                "jurisdiction",
                "website",
                "credential_hash",
            )
        }


class PinRecordSchema(BaseRecordSchema):
    """Schema to allow serialization/deserialization of identity pins."""

    class Meta:
        """PinRecordSchema metadata."""

        model_class = PinRecord

    pin_id = fields.Str(
        required=False,
        metadata={"description": "Pin identifier", "example": UUID4_EXAMPLE},
    )
    category = fields.Str(
        required=True,
        validate=one_of(PinRecord.CATEGORIES),
        metadata={"description": "Trust category", "example": PinRecord.CATEGORY_CA},
    )
    did = fields.Str(
        required=True,
        validate=GENERIC_DID_VALIDATE,
        metadata={"description": "Pinned DID", "example": GENERIC_DID_EXAMPLE},
    )
    display_name = fields.Str(
        required=False,
        metadata={"description": "Display name", "example": "Acme Certification"},
    )
    registration_number = fields.Str(
        required=False,
        metadata={"description": "Registration number", "example": "REG-12345"},
    )
    jurisdiction = fields.Str(
        required=False, metadata={"description": "Jurisdiction", "example": "CH"}
    )
    website = fields.Str(
        required=False,
        metadata={"description": "Website", "example": "https://ca.example.org"},
    )
    credential_hash = fields.Str(
        required=False,
        metadata={
            "description": "Hash of the credential presented when pinned",
            "example": "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08",
        },
    )
