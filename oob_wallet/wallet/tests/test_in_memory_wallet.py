from unittest import IsolatedAsyncioTestCase

from ...core.in_memory import InMemoryProfile
from ..error import WalletNotFoundError
from ..in_memory import InMemoryWallet
from ..util import multikey_to_verkey, verkey_to_did_key


class TestInMemoryWallet(IsolatedAsyncioTestCase):
    test_seed = b"testseed000000000000000000000001"

    async def asyncSetUp(self):
        self.profile = InMemoryProfile.test_profile()
        self.wallet = InMemoryWallet(self.profile)

    async def test_create_local_did_seeded(self):
        info = await self.wallet.create_local_did(self.test_seed, {"alias": "Bob"})
        again = await InMemoryWallet(InMemoryProfile.test_profile()).create_local_did(
            self.test_seed
        )
        assert info.did == again.did
        assert info.did.startswith("did:peer:0z6Mk")
        assert multikey_to_verkey(info.did[len("did:peer:0") :]) == info.verkey
        assert info.metadata == {"alias": "Bob"}
        assert info.verkey in self.profile.keys

    async def test_create_local_did_random(self):
        first = await self.wallet.create_local_did()
        second = await self.wallet.create_local_did()
        assert first.did != second.did
        assert [info.did for info in await self.wallet.get_local_dids()] == [
            first.did,
            second.did,
        ]

    async def test_get_local_did(self):
        info = await self.wallet.create_local_did(metadata={"invitation": "1"})
        found = await self.wallet.get_local_did(info.did)
        assert found == info

        found.metadata["invitation"] = "changed"
        assert (await self.wallet.get_local_did(info.did)).metadata == {
            "invitation": "1"
        }

        with self.assertRaises(WalletNotFoundError):
            await self.wallet.get_local_did("did:peer:0z6Mkmissing")

    async def test_did_key(self):
        info = await self.wallet.create_local_did(self.test_seed)
        assert verkey_to_did_key(info.verkey) == "did:key:" + info.did[10:]
