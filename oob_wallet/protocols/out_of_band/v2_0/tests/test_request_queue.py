from datetime import timedelta
from unittest import IsolatedAsyncioTestCase

from .....core.event_bus import EventBus, MockEventBus
from .....core.in_memory import InMemoryProfile
from .....messaging.util import datetime_now, datetime_to_str, str_to_datetime
from .....storage.error import StorageNotFoundError
from ..messages.connection_request import (
    ConnectionRequestBody,
    ConnectionRequestMessage,
)
from ..models.connection_request import ConnectionRequestItem
from ..request_queue import ConnectionRequestQueue


def request_message(
    from_did="did:peer:bob", invitation_id="invitation-1", label="Bob", **kwargs
) -> ConnectionRequestMessage:
    return ConnectionRequestMessage(
        from_did=from_did,
        to=["did:peer:alice"],
        thid=invitation_id,
        body=ConnectionRequestBody(label=label),
        **kwargs,
    )


class TestConnectionRequestQueue(IsolatedAsyncioTestCase):
    def setUp(self):
        self.profile = InMemoryProfile.test_profile(
            settings={"queue.ttl_hours": 2}, bind={EventBus: MockEventBus()}
        )
        self.queue = ConnectionRequestQueue(self.profile)

    async def backdate(self, request_id: str):
        async with self.profile.transaction() as txn:
            item = await ConnectionRequestItem.retrieve_by_id(
                txn, request_id, for_update=True
            )
            item.expires_at = datetime_to_str(datetime_now() - timedelta(hours=1))
            await item.save(txn)
            await txn.commit()

    async def test_enqueue(self):
        message = request_message()
        request_id = await self.queue.enqueue(
            message, {"type": ["VerifiableCredential"]}
        )
        item = await self.queue.get_request(request_id)
        assert item.state == ConnectionRequestItem.STATE_PENDING
        assert item.message_id == message.id
        assert item.invitation_id == "invitation-1"
        assert item.from_did == "did:peer:bob"
        assert item.label == "Bob"
        assert item.message["from"] == "did:peer:bob"
        assert item.attached_credential == {"type": ["VerifiableCredential"]}
        remaining = str_to_datetime(item.expires_at) - datetime_now()
        assert timedelta(hours=1) < remaining <= timedelta(hours=2)

    async def test_enqueue_serialized_message(self):
        message = request_message()
        request_id = await self.queue.enqueue(message.serialize(), ttl_hours=48)
        item = await self.queue.get_request(request_id)
        assert item.message_id == message.id
        assert str_to_datetime(item.expires_at) - datetime_now() > timedelta(hours=47)

    async def test_enqueue_idempotent(self):
        message = request_message()
        first = await self.queue.enqueue(message)
        second = await self.queue.enqueue(message.serialize())
        assert first == second
        assert len(await self.queue.list_requests()) == 1

    async def test_resolve(self):
        request_id = await self.queue.enqueue(request_message())
        item = await self.queue.resolve(
            request_id,
            ConnectionRequestItem.STATE_ACCEPTED,
            {"is_verified": True},
        )
        assert item.state == ConnectionRequestItem.STATE_ACCEPTED
        assert item.resolved_at
        assert item.verification_result == {"is_verified": True}
        assert await self.queue.list_pending() == []

        again = await self.queue.resolve(request_id, ConnectionRequestItem.STATE_REJECTED)
        assert again.state == ConnectionRequestItem.STATE_ACCEPTED

    async def test_resolve_bad_state_or_missing(self):
        request_id = await self.queue.enqueue(request_message())
        with self.assertRaises(ValueError):
            await self.queue.resolve(request_id, ConnectionRequestItem.STATE_PENDING)
        with self.assertRaises(StorageNotFoundError):
            await self.queue.resolve("missing", ConnectionRequestItem.STATE_ACCEPTED)

    async def test_deduplicate(self):
        first = await self.queue.enqueue(request_message())
        await self.queue.enqueue(request_message())
        await self.queue.enqueue(request_message(invitation_id="invitation-2"))
        resolved = await self.queue.enqueue(request_message(from_did="did:peer:carol"))
        await self.queue.resolve(resolved, ConnectionRequestItem.STATE_REJECTED)
        await self.queue.enqueue(request_message(from_did="did:peer:carol"))

        assert await self.queue.deduplicate() == 1
        remaining = await self.queue.list_requests()
        assert len(remaining) == 4
        assert first in [item.request_id for item in remaining]
        assert await self.queue.deduplicate() == 0

    async def test_expiry_keeps_pending(self):
        pending = await self.queue.enqueue(request_message())
        resolved = await self.queue.enqueue(request_message(from_did="did:peer:carol"))
        fresh = await self.queue.enqueue(request_message(from_did="did:peer:dave"))
        await self.queue.resolve(resolved, ConnectionRequestItem.STATE_ACCEPTED)
        await self.queue.resolve(fresh, ConnectionRequestItem.STATE_REJECTED)
        await self.backdate(pending)
        await self.backdate(resolved)

        stats = await self.queue.stats()
        assert stats["expired"] == 1
        assert stats["total"] == 3

        assert await self.queue.cleanup_expired() == 1
        ids = [item.request_id for item in await self.queue.list_requests()]
        assert sorted(ids) == sorted([pending, fresh])
        item = await self.queue.get_request(pending)
        assert item.state == ConnectionRequestItem.STATE_PENDING

    async def test_stats(self):
        accepted = await self.queue.enqueue(request_message())
        await self.queue.enqueue(request_message(from_did="did:peer:carol"))
        await self.queue.resolve(accepted, ConnectionRequestItem.STATE_ACCEPTED)
        assert await self.queue.stats() == {
            "pending": 1,
            "accepted": 1,
            "rejected": 0,
            "expired": 0,
            "total": 2,
        }

    async def test_wallets_isolated(self):
        other = ConnectionRequestQueue(
            InMemoryProfile.test_profile(bind={EventBus: MockEventBus()})
        )
        await self.queue.enqueue(request_message())
        assert await other.list_requests() == []
