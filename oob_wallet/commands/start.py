"""Entrypoint."""

import asyncio
import logging
import signal
from typing import Sequence

from configargparse import ArgumentParser

from ..config import argparse as arg
from ..config.default_context import DefaultContextBuilder
from ..config.util import common_config
from ..core.conductor import Conductor
from . import PROG

LOGGER = logging.getLogger(__name__)


def init_argument_parser(parser: ArgumentParser):
    """Initialize an argument parser with the module's arguments."""
    return arg.load_argument_groups(parser, *arg.group.get_registered(arg.CAT_START))


async def run_app(conductor: Conductor):
    """Start up, wait for a termination signal, then shut down."""
    stopping = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stopping.set)

    try:
        await conductor.setup()
        await conductor.start()
    except Exception:
        LOGGER.exception("Exception during startup:")
        await conductor.stop()
        raise

    await stopping.wait()
    print("\nShutting down")
    await conductor.stop()


def execute(argv: Sequence[str] = None):
    """Entrypoint."""
    parser = arg.create_argument_parser(prog=PROG)
    parser.prog += " start"
    get_settings = init_argument_parser(parser)
    args = parser.parse_args(argv)
    settings = get_settings(args)
    common_config(settings)

    conductor = Conductor(DefaultContextBuilder(settings))
    asyncio.run(run_app(conductor))
