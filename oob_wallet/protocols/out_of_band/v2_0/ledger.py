"""Per-wallet ledger of invitation lifecycles."""

import logging
from typing import Callable, Mapping, Optional, Sequence

from ....core.profile import Profile
from ....messaging.util import time_now
from ....storage.error import StorageNotFoundError
from .models.invitation_record import InvitationRecord

LOGGER = logging.getLogger(__name__)


class InvitationStateLedger:
    """
    Record invitations and advance them through their lifecycle.

    Inviter records move `invitation-generated -> connection-requested ->
    connected | rejected`; invitee records move `invitation-received ->
    invitation-previewed -> connection-request-sent -> connection-established
    | invitation-rejected`. States only move forward and terminal states are
    sinks: a late or repeated transition is logged and ignored.

    Each mutation reads the whole record, changes it and writes it back in a
    single transaction.
    """

    def __init__(self, profile: Profile):
        """
        Initialize the ledger.

        Args:
            profile: The profile of the wallet whose invitations are tracked

        """
        self._profile = profile

    @property
    def profile(self) -> Profile:
        """Accessor for the current profile."""
        return self._profile

    async def _create(self, record: InvitationRecord) -> InvitationRecord:
        async with self._profile.transaction() as txn:
            existing = await InvitationRecord.query(
                txn, {"invitation_id": record.invitation_id}
            )
            if existing:
                LOGGER.debug(
                    "Invitation %s already recorded as %s",
                    record.invitation_id,
                    existing[0].state,
                )
                return existing[0]
            await record.save(txn, reason="Recorded invitation")
            await txn.commit()
        return record

    async def create_invitation_record(
        self,
        invitation_id: str,
        *,
        label: str = None,
        inviter_did: str = None,
        invitation_url: str = None,
        goal_code: str = None,
    ) -> InvitationRecord:
        """
        Record an invitation we generated.

        Idempotent on the invitation id: a second call returns the stored
        record unchanged.
        """
        return await self._create(
            InvitationRecord(
                invitation_id=invitation_id,
                role=InvitationRecord.ROLE_INVITER,
                state=InvitationRecord.STATE_GENERATED,
                label=label,
                inviter_did=inviter_did,
                invitation_url=invitation_url,
                goal_code=goal_code,
            )
        )

    async def create_received_invitation_record(
        self,
        invitation_id: str,
        *,
        label: str = None,
        inviter_did: str = None,
        invitation_url: str = None,
        goal_code: str = None,
        has_vc_proof: bool = False,
        vc_proof_type: str = None,
    ) -> InvitationRecord:
        """Record an invitation we received; idempotent on the invitation id."""
        return await self._create(
            InvitationRecord(
                invitation_id=invitation_id,
                role=InvitationRecord.ROLE_INVITEE,
                state=InvitationRecord.STATE_RECEIVED,
                label=label,
                inviter_did=inviter_did,
                invitation_url=invitation_url,
                goal_code=goal_code,
                has_vc_proof=has_vc_proof,
                vc_proof_type=vc_proof_type,
            )
        )

    async def _update(
        self,
        invitation_id: str,
        role: str,
        mutate: Callable[[InvitationRecord], bool],
        reason: str,
    ) -> bool:
        async with self._profile.transaction() as txn:
            try:
                record = await InvitationRecord.retrieve_by_invitation_id(
                    txn, invitation_id, for_update=True
                )
            except StorageNotFoundError:
                LOGGER.warning("No invitation record found for %s", invitation_id)
                return False
            if record.role != role:
                LOGGER.warning(
                    "Invitation %s is held as %s, not %s",
                    invitation_id,
                    record.role,
                    role,
                )
                return False
            if not mutate(record):
                return False
            await record.save(txn, reason=reason)
            await txn.commit()
        return True

    def _advance(self, record: InvitationRecord, state: str) -> bool:
        if not record.can_advance_to(state):
            LOGGER.info(
                "Ignoring transition of invitation %s from %s to %s",
                record.invitation_id,
                record.state,
                state,
            )
            return False
        record.state = state
        return True

    async def add_connection_request(
        self, invitation_id: str, request_id: str, message_id: str = None
    ) -> bool:
        """
        Attach a received connection request to one of our invitations.

        The request is appended at most once. A terminal record is left
        untouched, so a late request never reopens a rejected invitation.
        """

        def mutate(record: InvitationRecord) -> bool:
            if record.is_terminal:
                LOGGER.info(
                    "Invitation %s is %s; not adding request %s",
                    invitation_id,
                    record.state,
                    request_id,
                )
                return False
            if record.pending_request(request_id):
                return False
            record.pending_requests.append(
                {
                    "request_id": request_id,
                    "message_id": message_id,
                    "state": InvitationRecord.REQUEST_PENDING,
                }
            )
            if record.state == InvitationRecord.STATE_GENERATED:
                record.state = InvitationRecord.STATE_REQUESTED
            return True

        return await self._update(
            invitation_id, InvitationRecord.ROLE_INVITER, mutate, "Connection requested"
        )

    async def _resolve_request(
        self, invitation_id: str, request_id: str, state: str, request_state: str
    ) -> bool:
        def mutate(record: InvitationRecord) -> bool:
            if not self._advance(record, state):
                return False
            entry = record.pending_request(request_id)
            if entry:
                entry["state"] = request_state
            now = time_now()
            if state == InvitationRecord.STATE_CONNECTED:
                record.accepted_at = record.accepted_at or now
            else:
                record.rejected_at = record.rejected_at or now
            return True

        return await self._update(
            invitation_id, InvitationRecord.ROLE_INVITER, mutate, f"Invitation {state}"
        )

    async def mark_connected(self, invitation_id: str, request_id: str) -> bool:
        """Mark our invitation connected through the accepted request."""
        return await self._resolve_request(
            invitation_id,
            request_id,
            InvitationRecord.STATE_CONNECTED,
            InvitationRecord.REQUEST_ACCEPTED,
        )

    async def mark_rejected(self, invitation_id: str, request_id: str = None) -> bool:
        """Mark our invitation rejected, along with the rejected request."""
        return await self._resolve_request(
            invitation_id,
            request_id,
            InvitationRecord.STATE_REJECTED,
            InvitationRecord.REQUEST_REJECTED,
        )

    async def mark_previewed(self, invitation_id: str) -> bool:
        """Mark a received invitation previewed; only valid straight after receipt."""

        def mutate(record: InvitationRecord) -> bool:
            if record.state != InvitationRecord.STATE_RECEIVED:
                LOGGER.info(
                    "Invitation %s is %s; not marking previewed",
                    invitation_id,
                    record.state,
                )
                return False
            record.state = InvitationRecord.STATE_PREVIEWED
            record.previewed_at = record.previewed_at or time_now()
            return True

        return await self._update(
            invitation_id, InvitationRecord.ROLE_INVITEE, mutate, "Invitation previewed"
        )

    async def mark_request_sent(self, invitation_id: str, invitee_did: str) -> bool:
        """Mark that we answered a received invitation with a connection request."""

        def mutate(record: InvitationRecord) -> bool:
            if not self._advance(record, InvitationRecord.STATE_REQUEST_SENT):
                return False
            record.invitee_did = record.invitee_did or invitee_did
            record.request_sent_at = record.request_sent_at or time_now()
            return True

        return await self._update(
            invitation_id,
            InvitationRecord.ROLE_INVITEE,
            mutate,
            "Connection request sent",
        )

    async def mark_established(self, invitation_id: str) -> bool:
        """Mark the connection from a received invitation established."""

        def mutate(record: InvitationRecord) -> bool:
            if not self._advance(record, InvitationRecord.STATE_ESTABLISHED):
                return False
            record.accepted_at = record.accepted_at or time_now()
            return True

        return await self._update(
            invitation_id,
            InvitationRecord.ROLE_INVITEE,
            mutate,
            "Connection established",
        )

    async def mark_rejected_by_invitee(self, invitation_id: str) -> bool:
        """Mark a received invitation declined by us."""

        def mutate(record: InvitationRecord) -> bool:
            if not self._advance(record, InvitationRecord.STATE_INVITATION_REJECTED):
                return False
            record.rejected_at = record.rejected_at or time_now()
            return True

        return await self._update(
            invitation_id,
            InvitationRecord.ROLE_INVITEE,
            mutate,
            "Invitation rejected",
        )

    async def find_by_invitation_id(
        self, invitation_id: str
    ) -> Optional[InvitationRecord]:
        """Return the record for an invitation id, if any."""
        async with self._profile.session() as session:
            return await InvitationRecord.find_by_invitation_id(session, invitation_id)

    async def list_records(
        self, state: str = None, role: str = None
    ) -> Sequence[InvitationRecord]:
        """List records, oldest first, optionally filtered by state and role."""
        tag_filter = {}
        if state:
            tag_filter["state"] = state
        if role:
            tag_filter["role"] = role
        async with self._profile.session() as session:
            return await InvitationRecord.query(session, tag_filter)

    async def stats(self) -> Mapping[str, int]:
        """Count records per state, plus a total."""
        records = await self.list_records()
        counts = {state: 0 for state in InvitationRecord.STATES}
        for record in records:
            counts[record.state] = counts.get(record.state, 0) + 1
        counts["total"] = len(records)
        return counts

    async def clear_terminal(self) -> int:
        """Delete records in a terminal state; returns the number deleted."""
        removed = 0
        async with self._profile.transaction() as txn:
            for record in await InvitationRecord.query(txn):
                if record.is_terminal:
                    await record.delete_record(txn)
                    removed += 1
            await txn.commit()
        if removed:
            LOGGER.info("Cleared %s finished invitation records", removed)
        return removed
