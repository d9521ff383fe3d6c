"""Wallet profiles held in process memory."""

from collections import OrderedDict
from typing import Any, Mapping

from ..config.injection_context import InjectionContext
from ..storage.base import BaseStorage
from ..storage.in_memory import InMemoryStorage
from ..wallet.base import BaseWallet
from ..wallet.in_memory import InMemoryWallet
from .profile import Profile, ProfileManager, ProfileSession


class InMemoryProfile(Profile):
    """
    A wallet whose records and keys vanish with the process.

    Used for tests and throwaway demo wallets. Sessions and transactions
    behave the same: every write is visible at once.
    """

    BACKEND_NAME = "in_memory"
    TEST_PROFILE_NAME = "test-profile"

    def __init__(self, *, context: InjectionContext = None, name: str = None):
        """Create a new InMemoryProfile instance."""
        super().__init__(context=context, name=name, created=True)
        self.keys = {}
        self.local_dids = {}
        self.records = OrderedDict()

    def session(self, context: InjectionContext = None) -> ProfileSession:
        return InMemoryProfileSession(self, context=context)

    def transaction(self, context: InjectionContext = None) -> ProfileSession:
        return InMemoryProfileSession(self, context=context)

    @classmethod
    def test_profile(
        cls, settings: Mapping[str, Any] = None, bind: Mapping[type, Any] = None
    ) -> "InMemoryProfile":
        """
        Build a profile for tests.

        Each `bind` entry binds an instance for its class, or clears the
        binding when the instance is None.
        """
        profile = InMemoryProfile(
            context=InjectionContext(settings=settings, enforce_typing=False),
            name=InMemoryProfile.TEST_PROFILE_NAME,
        )
        for base_cls, instance in (bind or {}).items():
            if instance:
                profile.context.injector.bind_instance(base_cls, instance)
            else:
                profile.context.injector.clear_binding(base_cls)
        return profile


class InMemoryProfileSession(ProfileSession):
    """A session on an in-memory wallet."""

    async def _setup(self):
        injector = self._context.injector
        injector.bind_instance(BaseStorage, InMemoryStorage(self.profile))
        injector.bind_instance(BaseWallet, InMemoryWallet(self.profile))


class InMemoryProfileManager(ProfileManager):
    """Hands out fresh in-memory wallets."""

    async def provision(
        self, context: InjectionContext, config: Mapping[str, Any] = None
    ) -> Profile:
        return InMemoryProfile(context=context, name=(config or {}).get("name"))

    async def open(
        self, context: InjectionContext, config: Mapping[str, Any] = None
    ) -> Profile:
        """Open a wallet; nothing persists in memory, so this provisions."""
        return await self.provision(context, config)
