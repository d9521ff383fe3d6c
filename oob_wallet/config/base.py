"""Settings and dependency injection interfaces."""

from abc import ABC, abstractmethod
from typing import Any, Iterator, Mapping, Optional, Type, TypeVar

from ..core.error import BaseError

InjectType = TypeVar("InjectType")

FALSE_STRINGS = ("false", "False", "0")


class ConfigError(BaseError):
    """A base exception for all configuration errors."""


class BaseSettings(Mapping[str, Any]):
    """
    Read access to dotted configuration keys such as `wallet.type`.

    Values may come from the command line, the environment or a YAML
    file, so the typed getters convert strings as needed.
    """

    @abstractmethod
    def get_value(self, *var_names, default: Optional[Any] = None) -> Any:
        """Return the value of the first name that is set, else `default`."""

    def _get_as(self, convert, var_names, default):
        value = self.get_value(*var_names, default=default)
        return None if value is None else convert(value)

    def get_bool(self, *var_names, default: Optional[bool] = None) -> Optional[bool]:
        """Read a flag; the strings "false", "False" and "0" are false."""
        return self._get_as(
            lambda value: bool(value) and value not in FALSE_STRINGS,
            var_names,
            default,
        )

    def get_int(self, *var_names, default: Optional[int] = None) -> Optional[int]:
        return self._get_as(int, var_names, default)

    def get_str(self, *var_names, default: Optional[str] = None) -> Optional[str]:
        return self._get_as(str, var_names, default)

    @abstractmethod
    def __iter__(self) -> Iterator:
        """Iterate over the setting names."""

    def __getitem__(self, index):
        if not isinstance(index, str):
            raise TypeError(f"Setting name must be a string, not {index!r}")
        missing = object()
        value = self.get_value(index, default=missing)
        if value is missing:
            raise KeyError(f"Undefined setting: {index}")
        return value

    @abstractmethod
    def __len__(self):
        """Number of settings."""

    @abstractmethod
    def copy(self) -> "BaseSettings":
        """Return an independent copy."""

    @abstractmethod
    def extend(self, other: Mapping[str, Any]) -> "BaseSettings":
        """Return a copy with the entries of `other` layered on top."""

    def __repr__(self) -> str:
        items = ", ".join(f"{name}={self[name]}" for name in self)
        return f"<{self.__class__.__name__}({items})>"


class InjectionError(ConfigError):
    """The base exception raised by Injector and Provider implementations."""


class InjectorError(InjectionError):
    """Nothing usable is bound for a requested class."""


class BaseInjector(ABC):
    """Resolves service instances by the base class they implement."""

    @abstractmethod
    def inject(
        self,
        base_cls: Type[InjectType],
        settings: Optional[Mapping[str, Any]] = None,
    ) -> InjectType:
        """
        Return the instance bound for `base_cls`.

        Args:
            base_cls: The base class to retrieve an instance of
            settings: Extra settings handed to the provider

        Raises:
            InjectorError: If nothing is bound

        """

    @abstractmethod
    def inject_or(
        self,
        base_cls: Type[InjectType],
        settings: Optional[Mapping[str, Any]] = None,
        default: Optional[InjectType] = None,
    ) -> Optional[InjectType]:
        """Return the instance bound for `base_cls`, or `default`."""

    @abstractmethod
    def copy(self) -> "BaseInjector":
        """Return an injector with the same settings and bindings."""


class BaseProvider(ABC):
    """Produces the instance for one binding."""

    @abstractmethod
    def provide(self, settings: BaseSettings, injector: BaseInjector):
        """Return the instance, creating it if needed."""
