"""Mutable settings."""

from typing import Mapping

from .base import BaseSettings


class Settings(BaseSettings):
    """Settings backed by a plain dictionary."""

    def __init__(self, values: Mapping[str, object] = None):
        """Initialize a Settings object."""
        self._values = dict(values or {})

    def get_value(self, *var_names, default=None):
        return next(
            (self._values[name] for name in var_names if name in self._values),
            default,
        )

    def set_value(self, var_name: str, value):
        if not isinstance(var_name, str):
            raise TypeError("Setting name must be a string")
        if not var_name:
            raise ValueError("Setting name must be non-empty")
        self._values[var_name] = value

    def set_default(self, var_name: str, value):
        """Set a value unless the setting is already present."""
        if var_name not in self._values:
            self.set_value(var_name, value)

    def __contains__(self, index):
        return index in self._values

    def __iter__(self):
        return iter(self._values)

    def __setitem__(self, index, value):
        self.set_value(index, value)

    def __len__(self):
        return len(self._values)

    def __bool__(self):
        # an empty Settings is still a configured settings object
        return True

    def copy(self) -> BaseSettings:
        return Settings(self._values)

    def extend(self, other: Mapping[str, object]) -> BaseSettings:
        return Settings({**self._values, **other})

    def update(self, other: Mapping[str, object]):
        """Merge `other` into these settings in place."""
        self._values.update(other)
