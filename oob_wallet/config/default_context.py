"""Builds the application context shared by every wallet."""

from abc import ABC, abstractmethod
from typing import Mapping

from ..core.event_bus import EventBus
from ..core.profile import ProfileManager, ProfileManagerProvider
from ..messaging.responder import BaseResponder, EventResponder
from ..vc.hasher import BaseCredentialHasher, Sha256CredentialHasher
from ..vc.verifier import BaseCredentialVerifier, Ed25519JwsVerifier
from .injection_context import InjectionContext
from .settings import Settings

DEFAULT_LABEL = "OOB Wallet"


class ContextBuilder(ABC):
    """Turns parsed settings into an application injection context."""

    def __init__(self, settings: Mapping[str, object] = None):
        """Initialize an instance of the context builder."""
        self.settings = Settings(settings)

    @abstractmethod
    async def build_context(self) -> InjectionContext:
        """Return a new application context."""


class DefaultContextBuilder(ContextBuilder):
    """
    Binds the process-wide services.

    Every wallet profile inherits these bindings: one event bus, a
    responder that publishes outbound messages as events, the credential
    signature verifier and hasher, and the profile manager for the
    configured wallet type.
    """

    async def build_context(self) -> InjectionContext:
        context = InjectionContext(settings=self.settings)
        context.settings.set_default("default_label", DEFAULT_LABEL)

        injector = context.injector
        injector.bind_instance(EventBus, EventBus())
        injector.bind_instance(BaseResponder, EventResponder())
        injector.bind_instance(BaseCredentialVerifier, Ed25519JwsVerifier())
        injector.bind_instance(BaseCredentialHasher, Sha256CredentialHasher())

        await self.bind_providers(context)
        return context

    async def bind_providers(self, context: InjectionContext):
        context.injector.bind_provider(ProfileManager, ProfileManagerProvider())
