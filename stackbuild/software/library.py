"""The library of components registered for a project.

The library is the dependency graph: an ordered, name-indexed collection of
components. It only ever grows, and registering the same component twice is
a no-op, so recipes can register their dependencies freely as they load.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from stackbuild.errors import ComponentNotFoundError, DuplicateComponentError

if TYPE_CHECKING:
    from stackbuild.software.models import Component, Project

logger = logging.getLogger(__name__)


class Library:
    """Ordered collection of the components registered for one project."""

    def __init__(self, project: Project | None = None) -> None:
        self.project = project
        self._components: list[Component] = []
        self._by_name: dict[str, Component] = {}

    def register(self, component: Component) -> bool:
        """Add a component to the library.

        Args:
            component: Component to register.

        Returns:
            True if the component was added, False if it was already present.

        Raises:
            DuplicateComponentError: If a different component with the same
                name is already registered.
        """
        existing = self._by_name.get(component.name)
        if existing is not None:
            if existing is component or existing == component:
                return False
            raise DuplicateComponentError(component.name)

        self._components.append(component)
        self._by_name[component.name] = component
        logger.debug("Registered component %s (%s)", component.name, component.version)
        return True

    def lookup(self, name: str) -> Component:
        """Get a registered component by name.

        Raises:
            ComponentNotFoundError: If no component has that name.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise ComponentNotFoundError(name) from None

    def get(self, name: str) -> Component | None:
        """Get a registered component by name, or None."""
        return self._by_name.get(name)

    @property
    def components(self) -> tuple[Component, ...]:
        """Registered components in registration order."""
        return tuple(self._components)

    @property
    def names(self) -> list[str]:
        return [c.name for c in self._components]

    def build_order(self, strict: bool = False) -> list[Component]:
        """Resolve the build order against the owning project.

        See ``stackbuild.builds.resolver.build_order``.
        """
        from stackbuild.builds.resolver import build_order

        if self.project is None:
            raise ValueError("Library is not attached to a project")
        return build_order(self, self.project, strict=strict)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return item in self._by_name
        name = getattr(item, "name", None)
        return name is not None and self._by_name.get(name) is item

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __len__(self) -> int:
        return len(self._components)

    def __repr__(self) -> str:
        return f"Library({self.names!r})"


__all__ = ["Library"]
