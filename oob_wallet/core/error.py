"""Common exception classes."""

import re


class BaseError(Exception):
    """Generic exception class which other exceptions should inherit from."""

    def __init__(self, *args, error_code: str = None, **kwargs):
        """Initialize a BaseError instance."""
        super().__init__(*args, **kwargs)
        self.error_code = error_code or None

    @property
    def message(self) -> str:
        """Accessor for the error message."""
        return str(self.args[0]).strip() if self.args else ""

    @property
    def roll_up(self) -> str:
        """
        Accessor for nested error messages rolled into one line.

        aiohttp reasons are cut at the first newline, so causes are joined
        with periods instead.
        """

        def flatten(exc: Exception):
            text = str(exc.args[0]).strip() if exc.args else exc.__class__.__name__
            return re.sub(r"\n\s*", ". ", text).strip().rstrip(".")

        line = flatten(self)
        err = self
        while err.__cause__:
            err = err.__cause__
            line += ". {}".format(flatten(err))
        return f"{line.strip()}."


class ProfileError(BaseError):
    """Base error for profile operations."""


class ProfileDuplicateError(ProfileError):
    """Profile with the given name already exists."""


class ProfileNotFoundError(ProfileError):
    """Requested profile was not found."""


class ProfileSessionInactiveError(ProfileError):
    """Error raised when a profile session is not currently active."""


class StartupError(BaseError):
    """Error raised when there is a problem starting the wallet service."""
