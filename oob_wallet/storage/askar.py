"""Record storage on an Aries-Askar session."""

from contextlib import contextmanager
from typing import TYPE_CHECKING, Mapping, Sequence

from aries_askar import AskarError, AskarErrorCode

from .base import BaseStorage, validate_record
from .error import StorageDuplicateError, StorageError, StorageNotFoundError
from .record import StorageRecord

if TYPE_CHECKING:
    from ..askar.profile import AskarProfileSession


@contextmanager
def askar_errors(action: str, target: str = None):
    """Translate Askar errors raised while performing `action`."""
    try:
        yield
    except AskarError as err:
        if target and err.code == AskarErrorCode.DUPLICATE:
            raise StorageDuplicateError(f"Duplicate record: {target}") from None
        if target and err.code == AskarErrorCode.NOT_FOUND:
            raise StorageNotFoundError(f"Record not found: {target}") from None
        raise StorageError(f"Error when {action}") from err


def _to_record(entry) -> StorageRecord:
    value = entry.value
    return StorageRecord(
        type=entry.category,
        id=entry.name,
        value=value.decode("utf-8") if value is not None else None,
        tags=entry.tags or {},
    )


class AskarStorage(BaseStorage):
    """Wallet records kept as Askar non-secret entries."""

    def __init__(self, session: "AskarProfileSession"):
        """Initialize an `AskarStorage` instance."""
        self._session = session

    @property
    def _handle(self):
        return self._session.handle

    async def add_record(self, record: StorageRecord):
        validate_record(record)
        with askar_errors("adding a record", f"{record.type}/{record.id}"):
            await self._handle.insert(record.type, record.id, record.value, record.tags)

    async def get_record(
        self, record_type: str, record_id: str, options: Mapping = None
    ) -> StorageRecord:
        if not record_type or not record_id:
            raise StorageError("Record type and ID are required")
        with askar_errors("fetching a record"):
            entry = await self._handle.fetch(
                record_type,
                record_id,
                for_update=bool((options or {}).get("forUpdate")),
            )
        if not entry:
            raise StorageNotFoundError(f"Record not found: {record_type}/{record_id}")
        return _to_record(entry)

    async def update_record(self, record: StorageRecord, value: str, tags: Mapping):
        validate_record(record)
        with askar_errors("updating a record", f"{record.type}/{record.id}"):
            await self._handle.replace(record.type, record.id, value, tags)

    async def delete_record(self, record: StorageRecord):
        validate_record(record, delete=True)
        with askar_errors("removing a record", f"{record.type}/{record.id}"):
            await self._handle.remove(record.type, record.id)

    async def find_all_records(
        self,
        type_filter: str,
        tag_query: Mapping = None,
        options: Mapping = None,
    ) -> Sequence[StorageRecord]:
        with askar_errors("searching records"):
            entries = await self._handle.fetch_all(
                type_filter,
                tag_query,
                for_update=bool((options or {}).get("forUpdate")),
            )
        return [_to_record(entry) for entry in entries]
