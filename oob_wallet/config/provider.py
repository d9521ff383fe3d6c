"""Binding providers."""

from .base import BaseInjector, BaseProvider, BaseSettings


class InstanceProvider(BaseProvider):
    """Always provides the same, already created instance."""

    def __init__(self, instance):
        """Initialize the instance provider."""
        if instance is None:
            raise ValueError("Class instance binding must be non-empty")
        self._instance = instance

    def provide(self, settings: BaseSettings, injector: BaseInjector):
        return self._instance
