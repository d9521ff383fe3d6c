"""Scoped injection contexts."""

import copy
from typing import List, Mapping, Optional, Type

from .base import BaseInjector, InjectionError
from .injector import Injector, InjectType
from .settings import Settings


class InjectionContextError(InjectionError):
    """Base class for issues in the injection context."""


class InjectionContext(BaseInjector):
    """
    Settings and class bindings for one scope.

    The application scope holds what every wallet shares. Profiles
    start a `session` scope per storage session and the admin server an
    `admin` scope per request. Bindings made in a child scope never leak
    back to its parent.
    """

    ROOT_SCOPE = "application"

    def __init__(
        self, *, settings: Mapping[str, object] = None, enforce_typing: bool = True
    ):
        """Initialize an `InjectionContext`."""
        self._injector = Injector(settings, enforce_typing=enforce_typing)
        self._scope_name = InjectionContext.ROOT_SCOPE
        self._parents: List[str] = []

    @property
    def injector(self) -> Injector:
        return self._injector

    @property
    def scope_name(self) -> str:
        return self._scope_name

    @property
    def settings(self) -> Settings:
        return self._injector.settings

    @settings.setter
    def settings(self, settings: Settings):
        self._injector.settings = settings

    def start_scope(
        self, scope_name: str, settings: Mapping[str, object] = None
    ) -> "InjectionContext":
        """
        Return a child context for a new named scope.

        Raises:
            InjectionContextError: If the name is empty or already in use
                by this scope or one of its parents

        """
        if not scope_name:
            raise InjectionContextError("Scope name must be non-empty")
        if scope_name == self._scope_name or scope_name in self._parents:
            raise InjectionContextError(f"Cannot re-enter scope: {scope_name}")
        child = self.copy()
        child._parents.append(self._scope_name)
        child._scope_name = scope_name
        if settings:
            child.settings.update(settings)
        return child

    def inject(
        self,
        base_cls: Type[InjectType],
        settings: Mapping[str, object] = None,
    ) -> InjectType:
        return self._injector.inject(base_cls, settings)

    def inject_or(
        self,
        base_cls: Type[InjectType],
        settings: Mapping[str, object] = None,
        default: Optional[InjectType] = None,
    ) -> Optional[InjectType]:
        return self._injector.inject_or(base_cls, settings, default)

    def copy(self) -> "InjectionContext":
        """Copy this context with independent settings and bindings."""
        result = copy.copy(self)
        result._injector = self._injector.copy()
        result._parents = list(self._parents)
        return result
