"""Explicit registration table of bean types.

Bean types are registered at suite initialization, either one by one with
``register`` (usable as a class decorator) or in bulk by scanning a package
with ``scan``. Discovery then enumerates the table with ``subtypes_of``.
"""

from __future__ import annotations

from collections.abc import Iterator
import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import TypeVar

from beancheck.beans import Bean, all_subclasses, qualified_name

logger = logging.getLogger(__name__)

BeanT = TypeVar("BeanT", bound=type[Bean])


class BeanRegistry:
    """Registry of bean types keyed by fully-qualified name.

    Attributes:
        _types: Internal mapping from qualified name to bean type.
    """

    def __init__(self) -> None:
        """Create an empty registry."""
        self._types: dict[str, type[Bean]] = {}

    @classmethod
    def from_subclasses(cls, base: type[Bean] = Bean) -> BeanRegistry:
        """Build a registry of every currently-defined subclass of *base*."""
        registry = cls()
        for sub in all_subclasses(base):
            registry.register(sub)
        return registry

    def register(self, bean: BeanT) -> BeanT:
        """Add a bean type to the registry and return it unchanged.

        Args:
            bean: A Bean subclass.

        Returns:
            *bean*, so ``register`` can be used as a class decorator.

        Raises:
            TypeError: If *bean* is not a Bean subclass.
        """
        if not (isinstance(bean, type) and issubclass(bean, Bean)):
            msg = f"Expected a Bean subclass, got {bean!r}"
            raise TypeError(msg)
        self._types[qualified_name(bean)] = bean
        return bean

    def scan(self, package: str | ModuleType) -> int:
        """Import *package* and its submodules and register the beans they define.

        Only classes defined in the scanned modules are registered, not ones
        they import.

        Args:
            package: Dotted package name or an imported module.

        Returns:
            The number of newly registered bean types.
        """
        root = importlib.import_module(package) if isinstance(package, str) else package
        modules = [root]
        if hasattr(root, "__path__"):
            for module_info in pkgutil.walk_packages(root.__path__, prefix=f"{root.__name__}."):
                modules.append(importlib.import_module(module_info.name))

        before = len(self._types)
        for module in modules:
            for _, member in inspect.getmembers(module, inspect.isclass):
                if issubclass(member, Bean) and member is not Bean and member.__module__ == module.__name__:
                    self.register(member)
        added = len(self._types) - before
        logger.info("Scanned %s: %d bean type(s) registered", root.__name__, added)
        return added

    def subtypes_of(self, base: type = Bean) -> set[type[Bean]]:
        """Return every registered strict subclass of *base*."""
        return {t for t in self._types.values() if t is not base and issubclass(t, base)}

    def __contains__(self, bean: object) -> bool:
        return isinstance(bean, type) and self._types.get(qualified_name(bean)) is bean

    def __iter__(self) -> Iterator[type[Bean]]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)


default_registry = BeanRegistry()
register = default_registry.register
