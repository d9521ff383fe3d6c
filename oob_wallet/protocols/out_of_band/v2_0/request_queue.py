"""Durable per-wallet queue of inbound connection requests."""

import logging
from datetime import timedelta
from typing import Mapping, Sequence, Union

from ....core.profile import Profile
from ....messaging.util import datetime_now, datetime_to_str, time_now
from .messages.connection_request import ConnectionRequestMessage
from .models.connection_request import ConnectionRequestItem

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 24


class ConnectionRequestQueue:
    """
    Hold connection requests until the user accepts or rejects them.

    The queue belongs to the profile it is constructed with, so the queues
    of two wallets never see each other's items. Resolved items stay on
    record for audit until their expiry has passed and `cleanup_expired`
    runs; pending items are never dropped or rejected for age.
    """

    def __init__(self, profile: Profile):
        """
        Initialize the queue.

        Args:
            profile: The profile of the wallet receiving the requests

        """
        self._profile = profile

    @property
    def profile(self) -> Profile:
        """Accessor for the current profile."""
        return self._profile

    @property
    def ttl_hours(self) -> int:
        """Default lifetime of a queued request."""
        return self._profile.settings.get_int(
            "queue.ttl_hours", default=DEFAULT_TTL_HOURS
        )

    async def enqueue(
        self,
        message: Union[ConnectionRequestMessage, Mapping],
        attached_credential: Mapping = None,
        ttl_hours: int = None,
        *,
        verification_result: Mapping = None,
    ) -> str:
        """
        Queue a connection request.

        Idempotent on the message id: a request already queued returns its
        existing request id.

        Args:
            message: The connection request message or its serialized form
            attached_credential: Credential presented with the request
            ttl_hours: Lifetime of the request, defaulting to the configured one
            verification_result: Validation outcome of the attached credential

        Returns:
            The request id

        """
        if not isinstance(message, ConnectionRequestMessage):
            message = ConnectionRequestMessage.deserialize(message)
        ttl = ttl_hours or self.ttl_hours

        async with self._profile.transaction() as txn:
            existing = await ConnectionRequestItem.query(
                txn, {"message_id": message.id}
            )
            if existing:
                LOGGER.debug(
                    "Connection request message %s already queued as %s",
                    message.id,
                    existing[0].request_id,
                )
                return existing[0].request_id

            item = ConnectionRequestItem(
                message_id=message.id,
                invitation_id=message.thid,
                from_did=message.from_did,
                label=message.body.label,
                message=message.serialize(),
                attached_credential=attached_credential,
                expires_at=datetime_to_str(datetime_now() + timedelta(hours=ttl)),
                verification_result=verification_result,
            )
            request_id = await item.save(txn, reason="Queued connection request")
            await txn.commit()

        LOGGER.info(
            "Queued connection request %s from %s", request_id, message.from_did
        )
        return request_id

    async def get_request(self, request_id: str) -> ConnectionRequestItem:
        """
        Fetch a queued request.

        Raises:
            StorageNotFoundError: If there is no such request

        """
        async with self._profile.session() as session:
            return await ConnectionRequestItem.retrieve_by_id(session, request_id)

    async def list_requests(self, state: str = None) -> Sequence[ConnectionRequestItem]:
        """List requests, oldest first, optionally in one state."""
        async with self._profile.session() as session:
            return await ConnectionRequestItem.query(
                session, {"state": state} if state else None
            )

    async def list_pending(self) -> Sequence[ConnectionRequestItem]:
        """List requests awaiting a decision, expired ones included."""
        return await self.list_requests(ConnectionRequestItem.STATE_PENDING)

    async def resolve(
        self,
        request_id: str,
        state: str,
        verification_result: Mapping = None,
    ) -> ConnectionRequestItem:
        """
        Record the decision on a pending request.

        A request that is already resolved is returned unchanged.

        Raises:
            StorageNotFoundError: If there is no such request
            ValueError: If the state is not a resolution state

        """
        if state not in (
            ConnectionRequestItem.STATE_ACCEPTED,
            ConnectionRequestItem.STATE_REJECTED,
        ):
            raise ValueError(f"Cannot resolve a connection request as {state}")

        async with self._profile.transaction() as txn:
            item = await ConnectionRequestItem.retrieve_by_id(
                txn, request_id, for_update=True
            )
            if not item.is_pending:
                LOGGER.info(
                    "Connection request %s already %s", request_id, item.state
                )
                return item
            item.state = state
            item.resolved_at = time_now()
            if verification_result is not None:
                item.verification_result = dict(verification_result)
            await item.save(txn, reason=f"Connection request {state}")
            await txn.commit()
        return item

    async def deduplicate(self) -> int:
        """
        Remove repeated requests, keeping the oldest of each.

        Requests repeat when they share a message id, or when the same
        requester has more than one pending request for the same invitation.

        Returns:
            The number of requests removed

        """
        removed = 0
        seen_messages = set()
        seen_pending = set()
        async with self._profile.transaction() as txn:
            for item in await ConnectionRequestItem.query(txn):
                key = item.dedup_key if item.is_pending else None
                if item.message_id in seen_messages or (key and key in seen_pending):
                    await item.delete_record(txn)
                    removed += 1
                    continue
                seen_messages.add(item.message_id)
                if key:
                    seen_pending.add(key)
            await txn.commit()
        if removed:
            LOGGER.info("Removed %s duplicate connection requests", removed)
        return removed

    async def cleanup_expired(self) -> int:
        """Delete resolved requests past their expiry; returns the number deleted."""
        removed = 0
        now = datetime_now()
        async with self._profile.transaction() as txn:
            for item in await ConnectionRequestItem.query(txn):
                if not item.is_pending and item.is_expired(now):
                    await item.delete_record(txn)
                    removed += 1
            await txn.commit()
        if removed:
            LOGGER.info("Removed %s expired connection requests", removed)
        return removed

    async def stats(self) -> Mapping[str, int]:
        """Count requests per state, plus expired pending ones and a total."""
        items = await self.list_requests()
        now = datetime_now()
        counts = {state: 0 for state in ConnectionRequestItem.STATES}
        expired = 0
        for item in items:
            counts[item.state] = counts.get(item.state, 0) + 1
            if item.is_pending and item.is_expired(now):
                expired += 1
        counts["expired"] = expired
        counts["total"] = len(items)
        return counts
