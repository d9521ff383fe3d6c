from unittest import IsolatedAsyncioTestCase

from marshmallow import fields

from ....core.event_bus import EventBus, MockEventBus
from ....core.in_memory import InMemoryProfile
from ....storage.base import BaseStorage
from ....storage.error import StorageDuplicateError, StorageNotFoundError
from ....storage.record import StorageRecord
from ..base_record import BaseRecord, BaseRecordSchema, match_post_filter


class NoteRecord(BaseRecord):
    class Meta:
        schema_class = "NoteRecordSchema"

    RECORD_TYPE = "note"
    RECORD_ID_NAME = "note_id"
    RECORD_TOPIC = "notes"
    TAG_NAMES = {"wallet", "state"}

    def __init__(self, *, note_id=None, wallet=None, text=None, state=None, **kwargs):
        super().__init__(note_id, state, **kwargs)
        self.wallet = wallet
        self.text = text

    @property
    def note_id(self):
        return self._id

    @property
    def record_value(self) -> dict:
        return {"text": self.text}


class NoteRecordSchema(BaseRecordSchema):
    class Meta:
        model_class = NoteRecord

    note_id = fields.Str(required=False)
    wallet = fields.Str(required=False)
    text = fields.Str(required=False)


class UntypedRecord(BaseRecord):
    class Meta:
        schema_class = "NoteRecordSchema"


def test_match_post_filter():
    value = {"role": "inviter", "label": "Alice"}
    assert match_post_filter(value, None)
    assert match_post_filter(value, {"role": "inviter"})
    assert match_post_filter(value, {"role": ["invitee", "inviter"]})
    assert not match_post_filter(value, {"role": "invitee"})
    assert not match_post_filter(value, {"missing": "x"})


class TestBaseRecord(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.event_bus = MockEventBus()
        self.profile = InMemoryProfile.test_profile(bind={EventBus: self.event_bus})

    def test_requires_record_type(self):
        with self.assertRaises(TypeError):
            UntypedRecord()

    def test_from_storage_rejects_embedded_id(self):
        with self.assertRaises(ValueError):
            NoteRecord.from_storage("n-1", {"note_id": "n-2"})

    def test_value_and_tags(self):
        record = NoteRecord(wallet="alice", text="hi", state="draft")
        assert record.tags == {"wallet": "alice", "state": "draft"}
        assert record.value == {
            "wallet": "alice",
            "state": "draft",
            "created_at": None,
            "updated_at": None,
            "text": "hi",
        }
        assert NoteRecord(text="hi").tags == {}

    async def test_save_retrieve_update(self):
        record = NoteRecord(wallet="alice", text="hi", state="draft")
        async with self.profile.session() as session:
            note_id = await record.save(session)
            assert record.created_at == record.updated_at

            loaded = await NoteRecord.retrieve_by_id(session, note_id)
            assert loaded == record

            loaded.text = "bye"
            await loaded.save(session, reason="Edited")
            again = await NoteRecord.retrieve_by_id(session, note_id)
            assert again.text == "bye"
            assert again.created_at == record.created_at

        topics = [event.topic for _, event in self.event_bus.events]
        assert topics == ["oob_wallet::record::notes::draft"]

    async def test_state_change_emits_event(self):
        record = NoteRecord(wallet="alice", state="draft")
        async with self.profile.session() as session:
            await record.save(session)
            record.state = "final"
            await record.save(session)
            await record.save(session, event=True)
            await record.delete_record(session)
            with self.assertRaises(StorageNotFoundError):
                await NoteRecord.retrieve_by_id(session, record.note_id)

        topics = [event.topic for _, event in self.event_bus.events]
        assert topics == [
            "oob_wallet::record::notes::draft",
            "oob_wallet::record::notes::final",
            "oob_wallet::record::notes::final",
            "oob_wallet::record::notes::deleted",
        ]

    async def test_retrieve_by_tag_filter(self):
        async with self.profile.session() as session:
            await NoteRecord(wallet="alice", text="a").save(session)
            await NoteRecord(wallet="bob", text="b1").save(session)
            await NoteRecord(wallet="bob", text="b2").save(session)

            found = await NoteRecord.retrieve_by_tag_filter(session, {"wallet": "alice"})
            assert found.text == "a"
            with self.assertRaises(StorageDuplicateError):
                await NoteRecord.retrieve_by_tag_filter(session, {"wallet": "bob"})
            with self.assertRaises(StorageNotFoundError):
                await NoteRecord.retrieve_by_tag_filter(session, {"wallet": "carol"})

    async def test_query_orders_and_filters(self):
        async with self.profile.session() as session:
            storage = session.inject(BaseStorage)
            for note_id, created, text in (
                ("n-2", "2024-01-02 00:00:00Z", "second"),
                ("n-1", "2024-01-01 00:00:00Z", "first"),
                ("n-3", "2024-01-03 00:00:00Z", "third"),
            ):
                await storage.add_record(
                    StorageRecord(
                        "note",
                        NoteRecord(
                            wallet="alice", text=text, created_at=created
                        ).storage_record.value,
                        {"wallet": "alice"},
                        note_id,
                    )
                )

            records = await NoteRecord.query(session, {"wallet": "alice"})
            assert [r.text for r in records] == ["first", "second", "third"]

            records = await NoteRecord.query(
                session, post_filter_positive={"text": ["first", "third"]}
            )
            assert [r.note_id for r in records] == ["n-1", "n-3"]
