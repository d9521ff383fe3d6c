"""Loading modules and classes by dotted path."""

import inspect
import sys
from importlib import import_module
from importlib.util import find_spec
from types import ModuleType
from typing import Optional, Type

from ..core.error import BaseError


class ModuleLoadError(BaseError):
    """A module exists but failed to import."""


class ClassNotFoundError(BaseError):
    """No class is defined at the given path."""


class ClassLoader:
    """Loads the admin route modules and the classes named in settings."""

    @classmethod
    def load_module(cls, mod_path: str) -> Optional[ModuleType]:
        """
        Import a module by its absolute dotted path.

        Returns:
            The module, or `None` if no such module exists

        Raises:
            ModuleLoadError: If the module exists but one of its imports fails

        """
        if mod_path in sys.modules:
            return sys.modules[mod_path]
        try:
            if not find_spec(mod_path):
                return None
        except ModuleNotFoundError:
            # a parent package is missing
            return None
        try:
            return import_module(mod_path)
        except ModuleNotFoundError as err:
            raise ModuleLoadError(f"Unable to import module {mod_path}: {err}") from err

    @classmethod
    def load_class(cls, class_name: str, default_module: Optional[str] = None) -> Type:
        """
        Resolve `package.module.Class`, or a bare `Class` in `default_module`.

        Raises:
            ClassNotFoundError: If the path does not name a class
            ModuleLoadError: If the module fails to import

        """
        if "." in class_name:
            mod_path, class_name = class_name.rsplit(".", 1)
        elif default_module:
            mod_path = default_module
        else:
            raise ClassNotFoundError(f"No module given for class name: {class_name}")

        module = cls.load_module(mod_path)
        if not module:
            raise ClassNotFoundError(f"Module '{mod_path}' not found")
        resolved = getattr(module, class_name, None)
        if not inspect.isclass(resolved):
            raise ClassNotFoundError(f"No class '{class_name}' in module {mod_path}")
        return resolved
