"""
The Conductor.

The conductor opens the wallet profiles, brings up the admin server and tears
both down again on shutdown.
"""

import logging

from ..admin.server import AdminServer
from ..config.default_context import ContextBuilder
from ..config.injection_context import InjectionContext
from ..multitenant.manager import WalletProfileManager
from ..version import __version__
from .profile import Profile

LOGGER = logging.getLogger(__name__)

SHUTDOWN_EVENT_TOPIC = "oob_wallet::shutdown"


class Conductor:
    """Initialize the shared context and run the wallet service."""

    def __init__(self, context_builder: ContextBuilder) -> None:
        """
        Initialize an instance of Conductor.

        Args:
            context_builder: Builder of the base injection context

        """
        self.admin_server = None
        self.context_builder = context_builder
        self.wallet_manager: WalletProfileManager = None
        self.root_profile: Profile = None

    @property
    def context(self) -> InjectionContext:
        """Accessor for the injection context."""
        return self.root_profile.context

    async def setup(self):
        """Initialize the global request context."""
        context = await self.context_builder.build_context()

        # Open the default wallet up front so configuration errors surface early
        self.wallet_manager = WalletProfileManager(context)
        context.injector.bind_instance(WalletProfileManager, self.wallet_manager)
        self.root_profile = await self.wallet_manager.get_wallet_profile()

        if context.settings.get_bool("admin.enabled"):
            self.admin_server = AdminServer(
                context.settings.get_str("admin.host", default="0.0.0.0"),
                context.settings.get_int("admin.port", default=80),
                context,
                self.wallet_manager,
            )

    async def start(self) -> None:
        """Start the service."""
        if self.admin_server:
            try:
                await self.admin_server.start()
            except Exception:
                LOGGER.exception("Unable to start administration API")
                raise

        LOGGER.info(
            "%s v%s started with wallet %s (%s); admin API %s",
            self.context.settings.get_str("default_label"),
            __version__,
            self.root_profile.name,
            self.root_profile.backend,
            (
                f"http://{self.admin_server.host}:{self.admin_server.port}"
                if self.admin_server
                else "not enabled"
            ),
        )

    async def stop(self):
        """Stop the service."""
        if self.root_profile:
            await self.root_profile.notify(SHUTDOWN_EVENT_TOPIC, {})
        if self.admin_server:
            await self.admin_server.stop()
        if self.wallet_manager:
            await self.wallet_manager.close_all()
