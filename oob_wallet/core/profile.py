"""Per-wallet profiles and the storage sessions opened against them."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Type

from ..config.base import BaseInjector, BaseProvider, BaseSettings
from ..config.injection_context import InjectionContext
from ..config.injector import InjectType
from ..utils.classloader import ClassLoader, ClassNotFoundError
from .error import ProfileError, ProfileSessionInactiveError
from .event_bus import Event, EventBus

LOGGER = logging.getLogger(__name__)


class Profile(ABC):
    """Handle to the durable state of a single wallet.

    A profile is opened once per wallet identifier and passed explicitly to
    every component that reads or writes that wallet's records.
    """

    BACKEND_NAME: str = None
    DEFAULT_NAME: str = "default"

    def __init__(
        self,
        *,
        context: InjectionContext = None,
        name: str = None,
        created: bool = False,
    ):
        """Initialize a base profile."""
        self._context = context or InjectionContext()
        self._created = created
        self._name = name or Profile.DEFAULT_NAME

    @property
    def backend(self) -> str:
        """Storage backend name, `askar` or `in_memory`."""
        return self.BACKEND_NAME

    @property
    def context(self) -> InjectionContext:
        """Injection context shared by all sessions of this wallet."""
        return self._context

    @property
    def created(self) -> bool:
        """Whether the wallet store was created when it was opened."""
        return self._created

    @property
    def name(self) -> str:
        """The wallet id."""
        return self._name

    @property
    def settings(self) -> BaseSettings:
        return self._context.settings

    @abstractmethod
    def session(self, context: InjectionContext = None) -> "ProfileSession":
        """Open a session for reads and single writes."""

    @abstractmethod
    def transaction(self, context: InjectionContext = None) -> "ProfileSession":
        """
        Open a session whose writes are applied together on commit.

        Leaving the context manager without a commit discards the writes.
        Backends without transactions apply each write immediately.
        """

    def inject(
        self, base_cls: Type[InjectType], settings: Mapping[str, object] = None
    ) -> InjectType:
        return self._context.inject(base_cls, settings)

    def inject_or(
        self,
        base_cls: Type[InjectType],
        settings: Mapping[str, object] = None,
        default: Optional[InjectType] = None,
    ) -> Optional[InjectType]:
        return self._context.inject_or(base_cls, settings, default)

    async def close(self):
        """Release the wallet store."""

    async def notify(self, topic: str, payload: Any):
        """Publish an event for this wallet when an event bus is bound."""
        event_bus = self.inject_or(EventBus)
        if event_bus:
            await event_bus.notify(self, Event(topic, payload))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(backend={self.backend}, name={self.name})>"


class ProfileManager(ABC):
    """Creates and opens wallet stores for one backend."""

    @abstractmethod
    async def provision(
        self, context: InjectionContext, config: Mapping[str, Any] = None
    ) -> Profile:
        """Create the wallet store described by `config` and open it."""

    @abstractmethod
    async def open(
        self, context: InjectionContext, config: Mapping[str, Any] = None
    ) -> Profile:
        """Open an existing wallet store."""


class ProfileSession(ABC):
    """
    A storage session on a profile, used as an async context manager.

    Entering binds the backend storage and wallet into a session scope of
    the profile context. Nested `async with` blocks on the same session
    share one underlying connection.
    """

    def __init__(
        self,
        profile: Profile,
        *,
        context: InjectionContext = None,
        settings: Mapping[str, Any] = None,
    ):
        """Initialize a base profile session."""
        self._active = False
        self._depth = 0
        self._context = (context or profile.context).start_scope("session", settings)
        self._profile = profile

    async def _setup(self):
        """Open the backend connection and bind session services."""

    async def _teardown(self, commit: bool = None):
        """Close the backend connection, committing when asked to."""

    async def __aenter__(self):
        if not self._active:
            await self._setup()
            self._active = True
        self._depth += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._depth -= 1
        if self._depth == 0 and self._active:
            await self._teardown(commit=None if exc_type is None else False)
            self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def context(self) -> InjectionContext:
        return self._context

    @property
    def settings(self) -> BaseSettings:
        return self._context.settings

    @property
    def profile(self) -> Profile:
        return self._profile

    def _require_active(self):
        if not self._active:
            raise ProfileSessionInactiveError()

    async def commit(self):
        """Apply the writes made in this transaction and close it."""
        self._require_active()
        await self._teardown(commit=True)
        self._active = False

    async def rollback(self):
        """Discard the writes made in this transaction and close it."""
        self._require_active()
        await self._teardown(commit=False)
        self._active = False

    def inject(
        self, base_cls: Type[InjectType], settings: Mapping[str, object] = None
    ) -> InjectType:
        """Resolve a session service; the session must be entered."""
        self._require_active()
        return self._context.inject(base_cls, settings)

    def inject_or(
        self,
        base_cls: Type[InjectType],
        settings: Mapping[str, object] = None,
        default: Optional[InjectType] = None,
    ) -> Optional[InjectType]:
        self._require_active()
        return self._context.inject_or(base_cls, settings, default)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(active={self._active})>"


class ProfileManagerProvider(BaseProvider):
    """Provide the profile manager matching the configured wallet type."""

    MANAGER_TYPES = {
        "askar": "oob_wallet.askar.profile.AskarProfileManager",
        "in_memory": "oob_wallet.core.in_memory.InMemoryProfileManager",
    }

    def __init__(self):
        """Initialize the profile manager provider."""
        self._managers = {}

    def provide(self, settings: BaseSettings, injector: BaseInjector):
        """Return the manager for `wallet.type`, loading it on first use."""
        wallet_type = settings.get_str("wallet.type", default="in_memory")
        # a fully qualified class name is accepted as well
        class_name = self.MANAGER_TYPES.get(wallet_type.lower(), wallet_type)

        if class_name not in self._managers:
            LOGGER.info("Loading profile manager for wallet type %s", wallet_type)
            try:
                self._managers[class_name] = ClassLoader.load_class(class_name)()
            except ClassNotFoundError as err:
                raise ProfileError(f"Unknown wallet type: {wallet_type}") from err
        return self._managers[class_name]
