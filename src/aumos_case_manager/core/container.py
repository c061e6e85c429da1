"""Dependency container for aumos-case-manager.

A Container maps a name to a factory, a singleton flag and the names of the
factory's dependencies. Resolving a name resolves its dependencies depth-first
and passes the instances positionally to the factory. Containers are built
explicitly (see build_container) and passed around; there is no global one.
"""

from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass, field
from typing import Any

from aumos_case_manager.errors import ConfigurationError


@dataclass(frozen=True)
class Registration:
    """How to build one named dependency."""

    factory: Callable[..., Any]
    singleton: bool = False
    dependencies: tuple[Hashable, ...] = field(default_factory=tuple)


class Container:
    """Registry that lazily builds and caches named dependencies."""

    def __init__(self) -> None:
        self._registrations: dict[Hashable, Registration] = {}
        self._singletons: dict[Hashable, Any] = {}

    def register(
        self,
        name: Hashable,
        factory: Callable[..., Any],
        *,
        singleton: bool = False,
        dependencies: Sequence[Hashable] = (),
    ) -> None:
        """Register ``factory`` under ``name``.

        Re-registering a name replaces the previous entry and drops any
        instance cached for it.
        """
        self._registrations[name] = Registration(
            factory=factory,
            singleton=singleton,
            dependencies=tuple(dependencies),
        )
        self._singletons.pop(name, None)

    def register_singleton(
        self,
        name: Hashable,
        factory: Callable[..., Any],
        dependencies: Sequence[Hashable] = (),
    ) -> None:
        """Register ``factory`` under ``name``, building it at most once.

        Args:
            name: Key the dependency is resolved by.
            factory: Callable receiving the resolved dependencies positionally.
            dependencies: Names resolved and passed to ``factory`` in order.
        """
        self.register(name, factory, singleton=True, dependencies=dependencies)

    def register_instance(self, name: Hashable, instance: Any) -> None:
        """Register an already-built object as a singleton."""
        self.register_singleton(name, lambda: instance)
        self._singletons[name] = instance

    def resolve(self, name: Hashable) -> Any:
        """Build (or return the cached) instance registered under ``name``.

        Raises:
            ConfigurationError: ``name`` or one of its dependencies is not
                registered, or the dependency graph contains a cycle.
        """
        return self._resolve(name, ())

    def _resolve(self, name: Hashable, path: tuple[Hashable, ...]) -> Any:
        if name in path:
            cycle = " -> ".join(str(item) for item in (*path[path.index(name):], name))
            raise ConfigurationError(f"Circular dependency detected: {cycle}")

        registration = self._registrations.get(name)
        if registration is None:
            if path:
                raise ConfigurationError(
                    f"Service '{name}' not found in container (required by '{path[-1]}')"
                )
            raise ConfigurationError(f"Service '{name}' not found in container")

        if registration.singleton and name in self._singletons:
            return self._singletons[name]

        dependencies = [
            self._resolve(dependency, (*path, name)) for dependency in registration.dependencies
        ]
        instance = registration.factory(*dependencies)

        if registration.singleton:
            self._singletons[name] = instance
        return instance

    def has(self, name: Hashable) -> bool:
        """Return True if ``name`` is registered."""
        return name in self._registrations

    def registered_names(self) -> list[Hashable]:
        """Return the registered names in registration order."""
        return list(self._registrations)

    def clear(self) -> None:
        """Remove every registration and cached instance."""
        self._registrations.clear()
        self._singletons.clear()
