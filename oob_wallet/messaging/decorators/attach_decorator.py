"""
A message decorator for attachments.

An attach decorator embeds content in a message or invitation, either
inline as JSON, base64-encoded, or by reference to external links.
"""

import json
import uuid
from typing import Any, Mapping, Optional, Sequence, Union

from marshmallow import EXCLUDE, fields, pre_load

from ..models.base import BaseModel, BaseModelSchema
from ..valid import UUID4_EXAMPLE
from ...wallet.util import b64_to_bytes, bytes_to_b64


class AttachDecoratorData(BaseModel):
    """Attach decorator data."""

    class Meta:
        """AttachDecoratorData metadata."""

        schema_class = "AttachDecoratorDataSchema"

    def __init__(
        self,
        *,
        json_: Any = None,
        base64_: str = None,
        links_: Union[Sequence[str], str] = None,
        sha256_: str = None,
    ):
        """
        Initialize decorator data.

        Exactly one of `json_`, `base64_` or `links_` carries the payload.

        Args:
            json_: inline JSON content
            base64_: base64-encoded content
            links_: URL or list of URLs for the content
            sha256_: optional sha-256 hash of the linked content

        """
        super().__init__()
        if json_ is not None:
            self.json_ = json_
        elif base64_:
            self.base64_ = base64_
        elif links_:
            self.links_ = [links_] if isinstance(links_, str) else list(links_)
            if sha256_:
                self.sha256_ = sha256_

    @property
    def json(self) -> Any:
        """Accessor for inline JSON data, if any."""
        return getattr(self, "json_", None)

    @property
    def base64(self) -> Optional[str]:
        """Accessor for base64-encoded data, if any."""
        return getattr(self, "base64_", None)

    @property
    def links(self) -> Optional[Sequence[str]]:
        """Accessor for data links, if any."""
        return getattr(self, "links_", None)

    @property
    def sha256(self) -> Optional[str]:
        """Accessor for the hash of linked data, if any."""
        return getattr(self, "sha256_", None)


class AttachDecoratorDataSchema(BaseModelSchema):
    """Attach decorator data schema."""

    class Meta:
        """AttachDecoratorDataSchema metadata."""

        model_class = AttachDecoratorData
        unknown = EXCLUDE

    json_ = fields.Raw(
        required=False,
        data_key="json",
        metadata={"description": "JSON-serialized data"},
    )
    base64_ = fields.Str(
        required=False,
        data_key="base64",
        metadata={"description": "Base64-encoded data"},
    )
    links_ = fields.List(
        fields.Str(),
        required=False,
        data_key="links",
        metadata={"description": "List of hypertext links to data"},
    )
    sha256_ = fields.Str(
        required=False,
        data_key="sha256",
        metadata={"description": "SHA256 hash (binhex encoded) of content"},
    )


class AttachDecorator(BaseModel):
    """Class representing attach decorator."""

    class Meta:
        """AttachDecorator metadata."""

        schema_class = "AttachDecoratorSchema"

    def __init__(
        self,
        *,
        ident: str = None,
        description: str = None,
        mime_type: str = None,
        data: AttachDecoratorData,
        **kwargs,
    ):
        """
        Initialize an AttachDecorator instance.

        Args:
            ident ("@id" in serialization): identifier for the appendage
            mime_type ("mime-type" in serialization): MIME type for attachment
            description: content description
            data: payload, as per `AttachDecoratorData`

        """
        super().__init__(**kwargs)
        self.ident = ident
        self.description = description
        self.mime_type = mime_type
        self.data = data

    @property
    def content(self) -> Any:
        """
        Return attachment content.

        Returns:
            inline JSON, base64 content decoded and JSON-loaded, or a tuple of
            data links and sha-256 hash

        Raises:
            ValueError: If base64 content is not valid JSON

        """
        if self.data is None:
            return None
        if self.data.json is not None:
            return self.data.json
        if self.data.base64:
            return json.loads(b64_to_bytes(self.data.base64))
        if self.data.links:
            return (self.data.links, self.data.sha256)
        return None

    @classmethod
    def data_json(
        cls,
        mapping: Union[Sequence[dict], dict],
        *,
        ident: str = None,
        description: str = None,
    ) -> "AttachDecorator":
        """Create an attachment embedding the mapping as inline JSON."""
        return AttachDecorator(
            ident=ident or str(uuid.uuid4()),
            description=description,
            mime_type="application/json",
            data=AttachDecoratorData(json_=mapping),
        )

    @classmethod
    def data_base64(
        cls,
        mapping: Mapping,
        *,
        ident: str = None,
        description: str = None,
    ) -> "AttachDecorator":
        """Create an attachment embedding the mapping as base64-encoded JSON."""
        return AttachDecorator(
            ident=ident or str(uuid.uuid4()),
            description=description,
            mime_type="application/json",
            data=AttachDecoratorData(
                base64_=bytes_to_b64(json.dumps(mapping).encode())
            ),
        )


class AttachDecoratorSchema(BaseModelSchema):
    """Attach decorator schema used in serialization/deserialization."""

    class Meta:
        """AttachDecoratorSchema metadata."""

        model_class = AttachDecorator
        unknown = EXCLUDE

    @pre_load
    def accept_plain_id(self, data, **kwargs):
        """Accept `id`, `media_type` and bare base64 `data` from SDK producers."""
        if isinstance(data, dict):
            data = dict(data)
            if "@id" not in data and "id" in data:
                data["@id"] = data.pop("id")
            if "mime-type" not in data and "media_type" in data:
                data["mime-type"] = data.pop("media_type")
            if isinstance(data.get("data"), str):
                data["data"] = {"base64": data["data"]}
        return data

    ident = fields.Str(
        required=False,
        allow_none=False,
        data_key="@id",
        metadata={"description": "Attachment identifier", "example": UUID4_EXAMPLE},
    )
    mime_type = fields.Str(
        required=False,
        data_key="mime-type",
        metadata={"description": "MIME type", "example": "application/json"},
    )
    description = fields.Str(
        required=False,
        metadata={"description": "Human-readable description of content"},
    )
    data = fields.Nested(AttachDecoratorDataSchema, required=True)
