"""Wallet configuration."""

import logging
from typing import Any, Mapping

from ..core.error import ProfileNotFoundError
from ..core.profile import Profile, ProfileManager
from .injection_context import InjectionContext

LOGGER = logging.getLogger(__name__)

CFG_MAP = {"key", "key_derivation_method", "name", "storage_path"}


def profile_config(settings: Mapping[str, Any]) -> dict:
    """Collect the `wallet.*` settings understood by the profile managers."""
    profile_cfg = {}
    for k in CFG_MAP:
        pk = f"wallet.{k}"
        if settings.get(pk) is not None:
            profile_cfg[k] = settings[pk]
    if settings.get("wallet.recreate"):
        profile_cfg["auto_recreate"] = True
    return profile_cfg


async def wallet_config(context: InjectionContext, provision: bool = False) -> Profile:
    """
    Open the profile described by the context settings.

    A missing store is provisioned when `auto_provision` is set.

    Raises:
        ProfileNotFoundError: If the store does not exist and may not be created

    """
    mgr = context.inject(ProfileManager)
    profile_cfg = profile_config(context.settings)

    if provision:
        profile = await mgr.provision(context, profile_cfg)
    else:
        try:
            profile = await mgr.open(context, profile_cfg)
        except ProfileNotFoundError:
            if context.settings.get_bool("auto_provision", default=False):
                profile = await mgr.provision(context, profile_cfg)
            else:
                raise

    LOGGER.info(
        "Opened wallet profile %s (backend %s, created %s)",
        profile.name,
        profile.backend,
        profile.created,
    )
    return profile
