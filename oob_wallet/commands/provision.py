"""Provision command for creating a wallet store before starting."""

import asyncio
from typing import Sequence

from configargparse import ArgumentParser

from ..config import argparse as arg
from ..config.default_context import DefaultContextBuilder
from ..config.util import common_config
from ..config.wallet import wallet_config
from ..core.error import BaseError
from . import PROG


class ProvisionError(BaseError):
    """Base exception for provisioning errors."""


def init_argument_parser(parser: ArgumentParser):
    """Initialize an argument parser with the module's arguments."""
    return arg.load_argument_groups(
        parser, *arg.group.get_registered(arg.CAT_PROVISION)
    )


async def provision(settings: dict):
    """Create the configured wallet store."""
    context = await DefaultContextBuilder(settings).build_context()
    context.settings.set_default("wallet.name", "default")
    try:
        profile = await wallet_config(context, provision=True)
        print("Profile backend:", profile.backend)
        print("Profile name:", profile.name)
        await profile.close()
    except BaseError as err:
        raise ProvisionError("Error during provisioning") from err


def execute(argv: Sequence[str] = None):
    """Entrypoint."""
    parser = arg.create_argument_parser(prog=PROG)
    parser.prog += " provision"
    get_settings = init_argument_parser(parser)
    args = parser.parse_args(argv)
    settings = get_settings(args)
    common_config(settings)
    asyncio.run(provision(settings))
