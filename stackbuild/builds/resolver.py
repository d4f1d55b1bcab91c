"""Build order resolution.

This module turns a project's library into a single total build order:
every registered component appears exactly once, after every registered
component it depends on.

The traversal is a depth-first post-order walk seeded by the project's
top-level dependencies, in declared order. Components the seeds never reach
are walked afterwards in registration order, so extra components still get
built. Dependency names that do not resolve to a registered component are
considered satisfied outside the project and are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING

from stackbuild.errors import DependencyCycleError, UnresolvedDependencyError

if TYPE_CHECKING:
    from stackbuild.software.library import Library
    from stackbuild.software.models import Component, Project

logger = logging.getLogger(__name__)


def resolve_edges(
    library: Library,
    strict: bool = False,
) -> dict[str, list[Component]]:
    """Resolve every component's dependency names to registered components.

    Args:
        library: Library to resolve against.
        strict: Raise instead of skipping names that are not registered.

    Returns:
        Mapping of component name to its resolved dependencies, in declared
        order.

    Raises:
        UnresolvedDependencyError: In strict mode, for the first unknown name.
    """
    edges: dict[str, list[Component]] = {}
    for component in library.components:
        resolved: list[Component] = []
        for dep_name in component.dependencies:
            dep = library.get(dep_name)
            if dep is None:
                if strict:
                    raise UnresolvedDependencyError(component.name, dep_name)
                logger.debug(
                    "Dependency %s of %s is not registered; assuming it is "
                    "provided externally",
                    dep_name,
                    component.name,
                )
                continue
            resolved.append(dep)
        edges[component.name] = resolved
    return edges


def build_order(
    library: Library,
    project: Project,
    strict: bool = False,
) -> list[Component]:
    """Compute the order in which a project's components must be built.

    Args:
        library: Library holding the registered components.
        project: Project whose top-level dependencies seed the traversal.
        strict: Treat unregistered dependency names as errors.

    Returns:
        Every registered component exactly once, dependencies first.

    Raises:
        DependencyCycleError: If the dependencies contain a cycle.
        UnresolvedDependencyError: In strict mode, for unknown names.
    """
    edges = resolve_edges(library, strict=strict)
    order: list[Component] = []
    done: set[str] = set()

    def visit(root: Component) -> None:
        if root.name in done:
            return

        # Stack of (component, iterator over its remaining dependencies);
        # the components on the stack are the current DFS path.
        stack: list[tuple[Component, Iterator[Component]]] = [
            (root, iter(edges[root.name]))
        ]
        on_path = {root.name}

        while stack:
            node, pending = stack[-1]
            for dep in pending:
                if dep.name in done:
                    continue
                if dep.name in on_path:
                    path = [c.name for c, _ in stack]
                    start = path.index(dep.name)
                    raise DependencyCycleError([*path[start:], dep.name])
                stack.append((dep, iter(edges[dep.name])))
                on_path.add(dep.name)
                break
            else:
                stack.pop()
                on_path.discard(node.name)
                done.add(node.name)
                order.append(node)

    for name in project.dependencies:
        component = library.get(name)
        if component is None:
            if strict:
                raise UnresolvedDependencyError(project.name, name)
            logger.warning(
                "Top-level dependency %s of project %s is not registered",
                name,
                project.name,
            )
            continue
        visit(component)

    for component in library.components:
        visit(component)

    logger.debug("Build order: %s", ", ".join(c.name for c in order))
    return order


__all__ = ["build_order", "resolve_edges"]
