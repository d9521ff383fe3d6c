"""Record storage in the memory of an in-memory profile."""

from typing import TYPE_CHECKING, Mapping, Sequence

from .base import BaseStorage, validate_record
from .error import StorageDuplicateError, StorageNotFoundError, StorageSearchError
from .record import StorageRecord

if TYPE_CHECKING:
    from ..core.in_memory import InMemoryProfile


class InMemoryStorage(BaseStorage):
    """Records kept in the ordered record dictionary of the profile."""

    def __init__(self, profile: "InMemoryProfile"):
        """Initialize an `InMemoryStorage` instance."""
        self.profile = profile

    def _existing(self, record_id: str, record_type: str = None) -> StorageRecord:
        stored = self.profile.records.get(record_id)
        if not stored or (record_type and stored.type != record_type):
            raise StorageNotFoundError(f"Record not found: {record_id}")
        return stored

    async def add_record(self, record: StorageRecord):
        validate_record(record)
        if record.id in self.profile.records:
            raise StorageDuplicateError(f"Duplicate record: {record.id}")
        self.profile.records[record.id] = record

    async def get_record(
        self, record_type: str, record_id: str, options: Mapping = None
    ) -> StorageRecord:
        return self._existing(record_id, record_type)

    async def update_record(self, record: StorageRecord, value: str, tags: Mapping):
        validate_record(record)
        stored = self._existing(record.id)
        self.profile.records[record.id] = stored._replace(value=value, tags=tags)

    async def delete_record(self, record: StorageRecord):
        validate_record(record, delete=True)
        self._existing(record.id)
        del self.profile.records[record.id]

    async def find_all_records(
        self,
        type_filter: str,
        tag_query: Mapping = None,
        options: Mapping = None,
    ) -> Sequence[StorageRecord]:
        return [
            record
            for record in self.profile.records.values()
            if record.type == type_filter and tag_query_match(record.tags, tag_query)
        ]


def tag_value_match(value: str, match: dict) -> bool:
    """Match one tag value against `{"$in": [...]}` or `{"$neq": "..."}`."""
    if len(match) != 1:
        raise StorageSearchError(f"Unsupported subquery: {match}")
    op, operand = next(iter(match.items()))
    if op == "$in":
        if not isinstance(operand, list):
            raise StorageSearchError("Expected list for $in value")
        return value is not None and value in operand
    if op == "$neq":
        if not isinstance(operand, str):
            raise StorageSearchError("Expected string for $neq value")
        return value is not None and value != operand
    raise StorageSearchError(f"Unsupported match operator: {op}")


def _clauses(op: str, operand) -> list:
    if not isinstance(operand, list):
        raise StorageSearchError(f"Expected list for {op} filter value")
    return operand


def tag_query_match(tags: dict, tag_query: dict) -> bool:
    """Match a WQL-style tag query against the tags of one record."""
    tags = tags or {}
    for key, operand in (tag_query or {}).items():
        if key == "$or":
            matched = any(tag_query_match(tags, q) for q in _clauses(key, operand))
        elif key == "$and":
            matched = all(tag_query_match(tags, q) for q in _clauses(key, operand))
        elif key == "$not":
            if not isinstance(operand, dict):
                raise StorageSearchError("Expected dict for $not filter value")
            matched = not tag_query_match(tags, operand)
        elif key.startswith("$"):
            raise StorageSearchError(f"Unexpected filter operator: {key}")
        elif isinstance(operand, str):
            matched = tags.get(key) == operand
        elif isinstance(operand, dict):
            matched = tag_value_match(tags.get(key), operand)
        else:
            raise StorageSearchError(f"Expected string or dict for {key} filter")
        if not matched:
            return False
    return True
