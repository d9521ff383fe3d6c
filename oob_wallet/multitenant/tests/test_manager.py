from unittest import IsolatedAsyncioTestCase

from ...config.default_context import DefaultContextBuilder
from ...core.in_memory import InMemoryProfile
from ...protocols.out_of_band.v2_0.supervisor import ParseSupervisor
from ..manager import MultitenantManagerError, WalletProfileManager


class TestWalletProfileManager(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        builder = DefaultContextBuilder(
            settings={"wallet.type": "in_memory", "wallet.name": "main"}
        )
        self.context = await builder.build_context()
        self.manager = WalletProfileManager(self.context)

    async def test_default_wallet(self):
        assert self.manager.default_wallet_id == "main"
        profile = await self.manager.get_wallet_profile()
        assert isinstance(profile, InMemoryProfile)
        assert profile.name == "main"
        assert await self.manager.get_wallet_profile("main") is profile
        assert self.manager.wallet_ids == ["main"]

    async def test_profiles_isolated(self):
        alice = await self.manager.get_wallet_profile("alice")
        bob = await self.manager.get_wallet_profile("bob")
        assert alice is not bob
        assert alice.settings.get_str("wallet.id") == "alice"
        assert bob.settings.get_str("wallet.id") == "bob"
        assert self.context.settings.get_str("wallet.id") is None
        assert ParseSupervisor.for_profile(alice) is not ParseSupervisor.for_profile(
            bob
        )
        assert sorted(self.manager.wallet_ids) == ["alice", "bob"]

    async def test_invalid_wallet_id(self):
        for wallet_id in ("../etc", "a b", "-leading", "x" * 65):
            with self.assertRaises(MultitenantManagerError):
                await self.manager.get_wallet_profile(wallet_id)
        assert self.manager.wallet_ids == []

    async def test_add_profile_and_close(self):
        profile = InMemoryProfile.test_profile()
        self.manager.add_profile("main", profile)
        assert await self.manager.get_wallet_profile() is profile
        await self.manager.close_all()
        assert self.manager.wallet_ids == []
