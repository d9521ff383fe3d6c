"""Storage interface for wallet records."""

from abc import ABC, abstractmethod
from typing import Mapping, Sequence

from .error import StorageError
from .record import StorageRecord


def validate_record(record: StorageRecord, *, delete=False):
    """Raise `StorageError` unless the record can be written (or deleted)."""
    if not record:
        raise StorageError("No record provided")
    missing = [name for name in ("id", "type") if not getattr(record, name)]
    if not delete and not record.value:
        missing.append("value")
    if missing:
        raise StorageError(f"Record is missing: {', '.join(missing)}")


class BaseStorage(ABC):
    """
    Typed records holding a JSON value and flat string tags.

    Records are addressed by (type, id). Searches take a WQL-style tag
    query; every implementation supports plain equality, `$in`, `$neq`
    and the `$or`, `$and` and `$not` combinators.
    """

    @abstractmethod
    async def add_record(self, record: StorageRecord):
        """
        Insert a new record.

        Raises:
            StorageDuplicateError: If the type and id are already taken

        """

    @abstractmethod
    async def get_record(
        self, record_type: str, record_id: str, options: Mapping = None
    ) -> StorageRecord:
        """
        Load one record.

        `options` may set `forUpdate` to lock the row inside a transaction.

        Raises:
            StorageNotFoundError: If there is no such record

        """

    @abstractmethod
    async def update_record(self, record: StorageRecord, value: str, tags: Mapping):
        """Overwrite the value and tags of a stored record."""

    @abstractmethod
    async def delete_record(self, record: StorageRecord):
        """Remove a stored record."""

    @abstractmethod
    async def find_all_records(
        self,
        type_filter: str,
        tag_query: Mapping = None,
        options: Mapping = None,
    ) -> Sequence[StorageRecord]:
        """List the records of a type whose tags match the query."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
