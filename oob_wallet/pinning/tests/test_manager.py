from unittest import IsolatedAsyncioTestCase

import pytest

from ...core.event_bus import EventBus, MockEventBus
from ...core.in_memory import InMemoryProfile
from ...tests import mock
from ...vc.hasher import BaseCredentialHasher
from ..manager import IdentityPinMismatchError, IdentityPinningStore
from ..models.pin_record import PinRecord

CA_DID = "did:peer:0z6MkCertAuthority1"
OTHER_DID = "did:peer:0z6MkImpostor2"


def ca_credential(did: str = CA_DID) -> dict:
    return {
        "type": ["VerifiableCredential", "CertificationAuthorityIdentity"],
        "issuer": did,
        "credentialSubject": {
            "organizationName": "Acme Certification",
            "website": "https://ca.example.org",
            "jurisdiction": "CH",
            "registrationNumber": "REG-1",
        },
    }


class TestIdentityPinningStore(IsolatedAsyncioTestCase):
    def setUp(self):
        self.event_bus = MockEventBus()
        self.profile = InMemoryProfile.test_profile(bind={EventBus: self.event_bus})
        self.store = IdentityPinningStore(self.profile)

    async def test_nothing_pinned(self):
        assert not await self.store.is_pinned(IdentityPinningStore.CATEGORY_CA)
        assert await self.store.get_pin(IdentityPinningStore.CATEGORY_CA) is None
        assert await self.store.verify_against_pin(
            IdentityPinningStore.CATEGORY_CA, OTHER_DID
        )

    async def test_claim_and_pin(self):
        claim = await self.store.claim_from_credential(
            IdentityPinningStore.CATEGORY_CA, ca_credential(), "did:peer:0z6MkSender"
        )
        assert claim.did == CA_DID
        assert claim.display_name == "Acme Certification"
        assert claim.website == "https://ca.example.org"
        assert len(claim.credential_hash) == 64

        pinned = await self.store.pin(IdentityPinningStore.CATEGORY_CA, claim)
        assert pinned.pin_id
        assert await self.store.is_pinned(IdentityPinningStore.CATEGORY_CA)
        assert not await self.store.is_pinned(IdentityPinningStore.CATEGORY_COMPANY)
        assert [p.did for p in await self.store.list_pins()] == [CA_DID]
        topic = self.event_bus.events[-1][1].topic
        assert topic == "oob_wallet::record::identity_pins::active"

    async def test_pin_never_overwritten(self):
        first = PinRecord(did=CA_DID, display_name="Acme")
        await self.store.pin(IdentityPinningStore.CATEGORY_CA, first)
        second = PinRecord(did=OTHER_DID, display_name="Impostor")
        kept = await self.store.pin(IdentityPinningStore.CATEGORY_CA, second)
        assert kept.did == CA_DID
        assert len(await self.store.list_pins()) == 1

    async def test_mismatch(self):
        await self.store.pin(
            IdentityPinningStore.CATEGORY_CA, PinRecord(did=CA_DID, display_name="Acme")
        )
        assert await self.store.verify_against_pin(
            IdentityPinningStore.CATEGORY_CA, CA_DID
        )
        assert not await self.store.verify_against_pin(
            IdentityPinningStore.CATEGORY_CA, OTHER_DID
        )
        await self.store.check_pin(IdentityPinningStore.CATEGORY_CA, CA_DID)
        with self.assertRaises(IdentityPinMismatchError) as ctx:
            await self.store.check_pin(IdentityPinningStore.CATEGORY_CA, OTHER_DID)
        assert ctx.exception.pinned_did == CA_DID
        assert ctx.exception.presented_did == OTHER_DID

    async def test_company_claim_falls_back_to_sender(self):
        claim = await self.store.claim_from_credential(
            IdentityPinningStore.CATEGORY_COMPANY,
            {"type": "CompanyIdentity", "credentialSubject": {"companyName": "Acme"}},
            "did:peer:0z6MkSender",
        )
        assert claim.did == "did:peer:0z6MkSender"
        assert claim.display_name == "Acme"

    async def test_claim_uses_bound_hasher(self):
        hasher = mock.MagicMock(spec=BaseCredentialHasher)
        hasher.hash = mock.CoroutineMock(return_value="deadbeef")
        self.profile.context.injector.bind_instance(BaseCredentialHasher, hasher)
        claim = await self.store.claim_from_credential(
            IdentityPinningStore.CATEGORY_CA, ca_credential()
        )
        assert claim.credential_hash == "deadbeef"

    async def test_unknown_category(self):
        with pytest.raises(ValueError):
            await self.store.get_pin("bank")
