"""Wallet profiles persisted in an Aries-Askar store."""

import asyncio
import logging
from typing import Any, Mapping

from aries_askar import AskarError, Session, Store

from ..config.injection_context import InjectionContext
from ..core.error import ProfileError
from ..core.profile import Profile, ProfileManager, ProfileSession
from ..storage.askar import AskarStorage
from ..storage.base import BaseStorage
from ..wallet.askar import AskarWallet
from ..wallet.base import BaseWallet
from .store import AskarOpenStore, AskarStoreConfig

LOGGER = logging.getLogger(__name__)

SESSION_OPEN_TIMEOUT = 10


class AskarProfile(Profile):
    """A wallet backed by its own Askar sqlite database."""

    BACKEND_NAME = "askar"

    def __init__(self, opened: AskarOpenStore, context: InjectionContext = None):
        """Create a new AskarProfile instance."""
        super().__init__(context=context, name=opened.name, created=opened.created)
        self.opened = opened

    @property
    def store(self) -> Store:
        return self.opened.store

    def session(self, context: InjectionContext = None) -> ProfileSession:
        return AskarProfileSession(self, transaction=False, context=context)

    def transaction(self, context: InjectionContext = None) -> ProfileSession:
        return AskarProfileSession(self, transaction=True, context=context)

    async def close(self):
        if self.opened:
            LOGGER.debug("Closing Askar store for wallet %s", self.name)
            await self.opened.close()
            self.opened = None


class AskarProfileSession(ProfileSession):
    """A session or transaction on an Askar store."""

    def __init__(
        self,
        profile: AskarProfile,
        *,
        transaction: bool,
        context: InjectionContext = None,
        settings: Mapping[str, Any] = None,
    ):
        """Create a new AskarProfileSession instance."""
        super().__init__(profile=profile, context=context, settings=settings)
        self._transaction = transaction
        self._handle: Session = None

    @property
    def handle(self) -> Session:
        """The open Askar session, available while the session is entered."""
        return self._handle

    async def _setup(self):
        store = self.profile.store
        opener = store.transaction() if self._transaction else store.session()
        try:
            self._handle = await asyncio.wait_for(opener, SESSION_OPEN_TIMEOUT)
        except AskarError as err:
            raise ProfileError("Error opening store session") from err

        injector = self._context.injector
        injector.bind_instance(BaseStorage, AskarStorage(self))
        injector.bind_instance(BaseWallet, AskarWallet(self))

    async def _teardown(self, commit: bool = None):
        handle, self._handle = self._handle, None
        if not handle:
            return
        try:
            if commit:
                await handle.commit()
        except AskarError as err:
            raise ProfileError("Error committing transaction") from err
        finally:
            await handle.close()


class AskarProfileManager(ProfileManager):
    """Creates and opens per-wallet Askar stores."""

    async def provision(
        self, context: InjectionContext, config: Mapping[str, Any] = None
    ) -> Profile:
        return await self._open(context, config, provision=True)

    async def open(
        self, context: InjectionContext, config: Mapping[str, Any] = None
    ) -> Profile:
        return await self._open(context, config, provision=False)

    async def _open(
        self, context: InjectionContext, config: Mapping[str, Any], provision: bool
    ) -> AskarProfile:
        opened = await AskarStoreConfig(config).open_store(provision=provision)
        return AskarProfile(opened, context)
