"""Commands module common setup."""

from importlib import import_module
from os import getenv
from typing import Sequence

PROG = getenv("OOB_COMMAND_NAME", "oob-wallet")


def available_commands():
    """Index available commands."""
    return [
        {"name": "help", "summary": "Print available commands"},
        {"name": "provision", "summary": "Provision a wallet store"},
        {"name": "start", "summary": "Start the wallet service"},
    ]


def load_command(command: str):
    """Load the module corresponding with a named command."""
    for cmd in available_commands():
        if cmd["name"] == command:
            return import_module(cmd.get("module") or f"{__package__}.{command}")
    return None


def run_command(command: str, argv: Sequence[str] = None):
    """Execute a named command with command line arguments."""
    module = load_command(command) or load_command("help")
    module.execute(argv)
