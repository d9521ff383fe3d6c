"""Wallet records persisted through the profile storage."""

import json
import logging
import uuid
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence, Type, TypeVar, Union

from marshmallow import fields

from ...core.profile import ProfileSession
from ...storage.base import BaseStorage
from ...storage.error import StorageDuplicateError, StorageNotFoundError
from ...storage.record import StorageRecord
from ..util import datetime_to_str, time_now
from ..valid import ISO8601_DATETIME_EXAMPLE, ISO8601_DATETIME_VALIDATE
from .base import BaseModel, BaseModelError, BaseModelSchema

LOGGER = logging.getLogger(__name__)

RecordType = TypeVar("RecordType", bound="BaseRecord")


def match_post_filter(value: dict, post_filter: Optional[dict]) -> bool:
    """
    Check a decoded record value against a filter on its fields.

    A list, tuple or set in the filter lists accepted alternatives for
    that field. An empty filter accepts every value.
    """
    for key, wanted in (post_filter or {}).items():
        accepted = wanted if isinstance(wanted, (list, tuple, set)) else (wanted,)
        if value.get(key) not in accepted:
            return False
    return True


class BaseRecord(BaseModel):
    """A model stored as one JSON value with a set of searchable tags."""

    class Meta:
        """BaseRecord metadata."""

    RECORD_ID_NAME = "id"
    RECORD_TYPE = None
    RECORD_TOPIC: Optional[str] = None
    EVENT_NAMESPACE: str = "oob_wallet::record"
    TAG_NAMES = {"state"}
    STATE_DELETED = "deleted"

    def __init__(
        self,
        id: str = None,
        state: str = None,
        *,
        created_at: Union[str, datetime] = None,
        updated_at: Union[str, datetime] = None,
    ):
        """Initialize a new BaseRecord."""
        if not self.RECORD_TYPE:
            raise TypeError(
                f"{self.__class__.__name__} must define RECORD_TYPE to be stored"
            )
        self._id = id
        self._last_state = state
        self.state = state
        self.created_at = datetime_to_str(created_at)
        self.updated_at = datetime_to_str(updated_at)

    @classmethod
    def from_storage(cls, record_id: str, record: Mapping[str, Any]):
        """Rebuild a record from its storage id and decoded value."""
        if cls.RECORD_ID_NAME in record:
            raise ValueError(
                f"Stored value for {cls.__name__} already holds {cls.RECORD_ID_NAME}"
            )
        return cls(**{**record, cls.RECORD_ID_NAME: record_id})

    @property
    def storage_record(self) -> StorageRecord:
        """Accessor for a `StorageRecord` representing this record."""
        return StorageRecord(
            self.RECORD_TYPE, json.dumps(self.value), self.tags, self._id
        )

    @property
    def record_value(self) -> dict:
        """Fields kept in the stored value but not indexed as tags."""
        return {}

    @property
    def value(self) -> dict:
        """Accessor for the full stored value of this record."""
        return {
            **self.tags,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            **self.record_value,
        }

    @property
    def tags(self) -> dict:
        """Accessor for the searchable tags of this record."""
        tags = {}
        for name in sorted(self.TAG_NAMES or ()):
            tag_value = getattr(self, name)
            if tag_value is not None:
                tags[name] = tag_value
        return tags

    @classmethod
    async def retrieve_by_id(
        cls: Type[RecordType],
        session: ProfileSession,
        record_id: str,
        *,
        for_update=False,
    ) -> RecordType:
        """
        Retrieve a stored record by ID.

        Args:
            session: The profile session to use
            record_id: The ID of the record to find
            for_update: Lock the row for a subsequent update

        """
        storage = session.inject(BaseStorage)
        stored = await storage.get_record(
            cls.RECORD_TYPE, record_id, {"forUpdate": for_update}
        )
        return cls.from_storage(record_id, json.loads(stored.value))

    @classmethod
    async def retrieve_by_tag_filter(
        cls: Type[RecordType],
        session: ProfileSession,
        tag_filter: dict,
        *,
        for_update=False,
    ) -> RecordType:
        """
        Retrieve the one record matching a tag filter.

        Raises:
            StorageNotFoundError: If no record matches
            StorageDuplicateError: If more than one record matches

        """
        storage = session.inject(BaseStorage)
        rows = await storage.find_all_records(
            cls.RECORD_TYPE, tag_filter, options={"forUpdate": for_update}
        )
        if not rows:
            raise StorageNotFoundError(f"No {cls.__name__} found for {tag_filter}")
        if len(rows) > 1:
            raise StorageDuplicateError(
                f"{len(rows)} {cls.__name__} records found for {tag_filter}"
            )
        return cls.from_storage(rows[0].id, json.loads(rows[0].value))

    @classmethod
    async def query(
        cls: Type[RecordType],
        session: ProfileSession,
        tag_filter: dict = None,
        *,
        post_filter_positive: dict = None,
    ) -> Sequence[RecordType]:
        """
        Query stored records, oldest first.

        Args:
            session: The profile session to use
            tag_filter: An optional dictionary of tag filter clauses
            post_filter_positive: Filters on untagged fields of the stored value

        """
        storage = session.inject(BaseStorage)
        rows = await storage.find_all_records(cls.RECORD_TYPE, tag_filter)
        result = []
        for row in rows:
            stored = json.loads(row.value)
            if not match_post_filter(stored, post_filter_positive):
                continue
            try:
                result.append(cls.from_storage(row.id, stored))
            except BaseModelError as err:
                raise BaseModelError(f"{err}, for record id {row.id}")
        result.sort(key=lambda rec: rec.created_at or "")
        return result

    async def save(
        self,
        session: ProfileSession,
        *,
        reason: str = None,
        event: bool = None,
    ) -> str:
        """
        Write the record to storage and return its id.

        The full value and tag set replace whatever was stored before.
        A state change, or a new record, emits a record event unless
        `event` says otherwise.
        """
        created = not self._id
        self.updated_at = time_now()
        storage = session.inject(BaseStorage)
        try:
            if created:
                self._id = str(uuid.uuid4())
                self.created_at = self.updated_at
                await storage.add_record(self.storage_record)
            else:
                stored = self.storage_record
                await storage.update_record(stored, stored.value, stored.tags)
        except Exception:
            LOGGER.debug("Failed to save %s %s", self.RECORD_TYPE, self._id)
            raise
        LOGGER.debug(
            "%s %s %s (state=%s)",
            reason or ("Created" if created else "Updated"),
            self.RECORD_TYPE,
            self._id,
            self.state,
        )

        await self.post_save(session, created, self._last_state, event)
        self._last_state = self.state
        return self._id

    async def post_save(
        self,
        session: ProfileSession,
        new_record: bool,
        last_state: Optional[str],
        event: bool = None,
    ):
        """Emit the record event after a save when one is due."""
        if event is None:
            event = new_record or last_state != self.state
        if event:
            await self.emit_event(session, self.serialize())

    async def delete_record(self, session: ProfileSession):
        """Remove the stored record, announcing the deletion for stateful ones."""
        if not self._id:
            return
        if self.state:
            self.state = BaseRecord.STATE_DELETED
            await self.emit_event(session, self.serialize())
        await session.inject(BaseStorage).delete_record(self.storage_record)

    async def emit_event(self, session: ProfileSession, payload: Any = None):
        """Publish the record on `<namespace>::<topic>[::<state>]`."""
        if not self.RECORD_TOPIC:
            return
        topic = f"{self.EVENT_NAMESPACE}::{self.RECORD_TOPIC}"
        if self.state:
            topic = f"{topic}::{self.state}"
        await session.profile.notify(topic, payload or self.serialize())

    def __eq__(self, other: Any) -> bool:
        """Records are equal when their stored value and tags are."""
        return (
            type(other) is type(self)
            and self.value == other.value
            and self.tags == other.tags
        )


class BaseRecordSchema(BaseModelSchema):
    """Common fields of every stored record."""

    class Meta:
        """BaseRecordSchema metadata."""

        model_class = None

    state = fields.Str(
        required=False,
        metadata={"description": "Current record state", "example": "active"},
    )
    created_at = fields.Str(
        required=False,
        validate=ISO8601_DATETIME_VALIDATE,
        metadata={"description": "Creation time", "example": ISO8601_DATETIME_EXAMPLE},
    )
    updated_at = fields.Str(
        required=False,
        validate=ISO8601_DATETIME_VALIDATE,
        metadata={
            "description": "Time of last update",
            "example": ISO8601_DATETIME_EXAMPLE,
        },
    )
