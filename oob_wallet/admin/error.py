"""Admin error classes."""

from ..core.error import BaseError


class AdminError(BaseError):
    """Base class for admin server errors."""


class AdminSetupError(AdminError):
    """Admin server setup or configuration error."""
