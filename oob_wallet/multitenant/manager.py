"""Manager for the wallet profiles served by one process."""

import asyncio
import logging
import re
from typing import Dict, Sequence

from ..config.injection_context import InjectionContext
from ..config.wallet import wallet_config
from ..core.error import BaseError
from ..core.profile import Profile

LOGGER = logging.getLogger(__name__)

DEFAULT_WALLET_ID = "default"
WALLET_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


class MultitenantManagerError(BaseError):
    """Generic multitenant error."""


class WalletProfileManager:
    """
    Map wallet ids to profiles, opening each profile once.

    Every profile is opened from a copy of the base context whose settings
    name the wallet, so storage, the parse supervisor and the other
    per-wallet bindings never leak between wallets.
    """

    def __init__(self, base_context: InjectionContext):
        """
        Initialize the manager.

        Args:
            base_context: Base context every wallet context is extended from

        """
        self._base_context = base_context
        self._instances: Dict[str, Profile] = {}
        self._lock = asyncio.Lock()

    @property
    def default_wallet_id(self) -> str:
        """Wallet id used when a request names none."""
        return self._base_context.settings.get_str(
            "wallet.name", default=DEFAULT_WALLET_ID
        )

    @property
    def wallet_ids(self) -> Sequence[str]:
        """Ids of the wallets opened so far."""
        return list(self._instances)

    def add_profile(self, wallet_id: str, profile: Profile):
        """Register an already opened profile under a wallet id."""
        self._instances[wallet_id] = profile

    async def get_wallet_profile(self, wallet_id: str = None) -> Profile:
        """
        Get the profile for a wallet id, opening it on first use.

        Args:
            wallet_id: The wallet id, the default wallet if not given

        Returns:
            The profile for the wallet

        Raises:
            MultitenantManagerError: If the wallet id is not acceptable

        """
        wallet_id = wallet_id or self.default_wallet_id
        if not WALLET_ID_PATTERN.match(wallet_id):
            raise MultitenantManagerError(f"Invalid wallet id: {wallet_id}")

        async with self._lock:
            if wallet_id not in self._instances:
                context = self._base_context.copy()
                context.settings = context.settings.extend(
                    {"wallet.name": wallet_id, "wallet.id": wallet_id}
                )
                self._instances[wallet_id] = await wallet_config(context)
                LOGGER.info("Opened profile for wallet %s", wallet_id)
        return self._instances[wallet_id]

    async def close_all(self):
        """Close every open profile."""
        async with self._lock:
            for wallet_id, profile in self._instances.items():
                LOGGER.debug("Closing profile for wallet %s", wallet_id)
                await profile.close()
            self._instances.clear()
