"""The context handed by the admin server to each route handler."""

from typing import Mapping, Optional

from ..config.injection_context import InjectionContext
from ..config.injector import Injector
from ..core.profile import Profile, ProfileSession


class AdminRequestContext:
    """
    The wallet profile addressed by one admin request.

    Bindings made while handling the request live in an `admin` scope
    and are dropped with it.
    """

    def __init__(
        self,
        profile: Profile,
        *,
        context: InjectionContext = None,
        settings: Mapping[str, object] = None,
        wallet_id: str = None,
    ):
        """Initialize an instance of AdminRequestContext."""
        self._context = (context or profile.context).start_scope("admin", settings)
        self._profile = profile
        self._wallet_id = wallet_id

    @property
    def injector(self) -> Injector:
        return self._context.injector

    @property
    def profile(self) -> Profile:
        return self._profile

    @property
    def wallet_id(self) -> Optional[str]:
        """The wallet named in the request, or the default wallet."""
        return self._wallet_id

    def session(self) -> ProfileSession:
        """Open a profile session inside the request scope."""
        return self.profile.session(self._context)

    @classmethod
    def test_context(
        cls, session_inject: dict = None, profile: Profile = None
    ) -> "AdminRequestContext":
        """Build a request context on a test profile."""
        from ..core.in_memory import InMemoryProfile

        ctx = AdminRequestContext(profile or InMemoryProfile.test_profile())
        for base_cls, instance in (session_inject or {}).items():
            ctx.injector.bind_instance(base_cls, instance)
        return ctx

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}(wallet_id={self._wallet_id!r}, "
            f"scope={self._context.scope_name})>"
        )
