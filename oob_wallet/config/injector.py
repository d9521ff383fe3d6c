"""Class bindings for one injection scope."""

from typing import Mapping, Optional, Type

from .base import BaseInjector, BaseProvider, InjectorError, InjectType
from .provider import InstanceProvider
from .settings import Settings


class Injector(BaseInjector):
    """
    Maps base classes to providers.

    With `enforce_typing` on, a provided instance that does not subclass
    the requested base class is an error. Tests turn it off to bind mocks.
    """

    def __init__(
        self, settings: Mapping[str, object] = None, *, enforce_typing: bool = True
    ):
        """Initialize an `Injector`."""
        self.enforce_typing = enforce_typing
        self.settings = Settings(settings)
        self._providers = {}

    def bind_instance(self, base_cls: Type[InjectType], instance: InjectType):
        self._providers[base_cls] = InstanceProvider(instance)

    def bind_provider(self, base_cls: Type[InjectType], provider: BaseProvider):
        if not provider:
            raise ValueError("Class provider binding must be non-empty")
        self._providers[base_cls] = provider

    def clear_binding(self, base_cls: Type[InjectType]):
        self._providers.pop(base_cls, None)

    def inject_or(
        self,
        base_cls: Type[InjectType],
        settings: Mapping[str, object] = None,
        default: Optional[InjectType] = None,
    ) -> Optional[InjectType]:
        if not base_cls:
            raise InjectorError("No base class provided for lookup")
        provider = self._providers.get(base_cls)
        if not provider:
            return default
        instance = provider.provide(
            self.settings.extend(settings) if settings else self.settings, self
        )
        if instance is None:
            return default
        if self.enforce_typing and not isinstance(instance, base_cls):
            raise InjectorError(
                f"Instance bound for {base_cls.__name__} is a "
                f"{type(instance).__name__}"
            )
        return instance

    def inject(
        self,
        base_cls: Type[InjectType],
        settings: Mapping[str, object] = None,
    ) -> InjectType:
        instance = self.inject_or(base_cls, settings)
        if instance is None:
            raise InjectorError(f"Nothing is bound for {base_cls.__name__}")
        return instance

    def copy(self) -> BaseInjector:
        """Copy the settings and bindings; providers themselves are shared."""
        result = Injector(self.settings, enforce_typing=self.enforce_typing)
        result._providers = self._providers.copy()
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
