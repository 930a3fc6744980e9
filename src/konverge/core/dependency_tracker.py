"""
Dependency tracking between constructs.

A DependencyTracker holds the directed edges of one synthesis run and
provides cycle detection and topological ordering over them. There is no
shared instance: the synthesizer creates a fresh tracker per run and
passes it along explicitly.

Edges come from two sources, both collected by ``auto_detect_dependencies``:
dependencies declared on a node with ``node.add_dependency``, and the
hints of constructs implementing the ``DependencyHint`` protocol.
"""

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from attrs import frozen

from konverge.core.construct import Construct
from konverge.core.resource import KubernetesResource
from konverge.core.types import DependencyType
from konverge.exceptions import CircularDependencyError

logger = logging.getLogger(__name__)


@frozen
class ConstructDependency:
    """A registered edge: ``dependent`` needs ``dependency`` first."""

    dependent: Construct
    dependency: Construct
    dependency_type: DependencyType = DependencyType.CREATION_ORDER
    description: str | None = None


@frozen
class DependencyHintEdge:
    """An edge suggested by a composite construct about its own parts."""

    dependent: Construct
    dependency: Construct
    dependency_type: DependencyType
    description: str | None = None


@runtime_checkable
class DependencyHint(Protocol):
    """Capability of composite constructs that know how their parts relate."""

    def dependency_hints(self) -> Iterable[DependencyHintEdge]: ...


class DependencyTracker:
    """Registry of dependency edges, keyed by the dependent's path."""

    def __init__(self):
        self._dependencies: dict[str, list[ConstructDependency]] = {}

    def add_dependency(
        self,
        dependent: Construct,
        dependency: Construct,
        dependency_type: DependencyType = DependencyType.CREATION_ORDER,
        description: str | None = None,
    ) -> None:
        """
        Register that ``dependent`` depends on ``dependency``.

        Adding the same (dependency, type) pair twice for one dependent is a
        no-op.

        Params:
            dependent: The construct that needs the other one
            dependency: The construct that must be available first
            dependency_type: Kind of relationship
            description: Optional human-readable reason
        """
        edges = self._dependencies.setdefault(dependent.node.path, [])
        dependency_path = dependency.node.path
        for existing in edges:
            if (
                existing.dependency.node.path == dependency_path
                and existing.dependency_type == dependency_type
            ):
                return

        edges.append(
            ConstructDependency(dependent, dependency, dependency_type, description)
        )
        logger.debug(
            "Registered %s dependency %s -> %s",
            dependency_type.value,
            dependent.node.path,
            dependency_path,
        )

    def get_dependencies(self, construct: Construct) -> list[ConstructDependency]:
        return list(self._dependencies.get(construct.node.path, []))

    def get_dependents(self, construct: Construct) -> list[Construct]:
        """Constructs that directly depend on ``construct``."""
        target_path = construct.node.path
        return [
            edge.dependent
            for edges in self._dependencies.values()
            for edge in edges
            if edge.dependency.node.path == target_path
        ]

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._dependencies.values())

    def clear(self) -> None:
        self._dependencies.clear()

    def auto_detect_dependencies(self, constructs: Iterable[Construct]) -> None:
        """
        Rebuild the registry from the given constructs.

        Clears all edges, then registers each construct's declared
        dependencies and, for constructs implementing DependencyHint, the
        edges they suggest.

        Params:
            constructs: Every construct taking part in the run
        """
        self.clear()

        for construct in constructs:
            for declared in construct.node.dependencies:
                self.add_dependency(
                    construct,
                    declared.target,
                    declared.dependency_type,
                    declared.description,
                )

            if isinstance(construct, DependencyHint):
                for hint in construct.dependency_hints():
                    self.add_dependency(
                        hint.dependent,
                        hint.dependency,
                        hint.dependency_type,
                        hint.description,
                    )

        logger.debug("Detected %d dependency edges", self.edge_count)

    def detect_circular_dependencies(self, root: Construct) -> list[list[str]]:
        """
        Find dependency cycles among the constructs under ``root``.

        Runs a depth-first search from every not yet visited construct of
        the subtree. Each time the search reaches a construct that is still
        on the current path, the path slice from that construct to the
        repeat is recorded as one cycle. The same cycle may be reported more
        than once when several start points reach it.

        Params:
            root: Root of the subtree to check

        Returns:
            Cycles as lists of construct paths whose first and last entries
            are equal; empty when the graph is acyclic
        """
        visited: set[str] = set()
        visiting: set[str] = set()
        cycles: list[list[str]] = []

        def visit(construct: Construct, path: list[str]) -> None:
            construct_path = construct.node.path
            if construct_path in visiting:
                if construct_path in path:
                    start = path.index(construct_path)
                    cycles.append(path[start:] + [construct_path])
                return
            if construct_path in visited:
                return

            visiting.add(construct_path)
            current = path + [construct_path]
            for edge in self.get_dependencies(construct):
                visit(edge.dependency, current)
            visiting.discard(construct_path)
            visited.add(construct_path)

        for construct in root.node.find_all():
            if construct.node.path not in visited:
                visit(construct, [])

        if cycles:
            logger.warning("Detected %d circular dependencies", len(cycles))
        return cycles

    def order_constructs(self, constructs: Iterable[Construct]) -> list[Construct]:
        """
        Topologically sort constructs so dependencies come first.

        Only edges between constructs in the given collection affect the
        order. Independent constructs keep no particular relative order.

        Params:
            constructs: The constructs to order

        Returns:
            The same constructs, each after all of its dependencies

        Raises:
            CircularDependencyError: If the constructs contain a cycle
        """
        constructs = list(constructs)
        known = {construct.node.path for construct in constructs}
        visited: set[str] = set()
        visiting: set[str] = set()
        ordered: list[Construct] = []

        def visit(construct: Construct) -> None:
            construct_path = construct.node.path
            if construct_path in visiting:
                raise CircularDependencyError(construct_path)
            if construct_path in visited:
                return

            visiting.add(construct_path)
            for edge in self.get_dependencies(construct):
                if edge.dependency.node.path in known:
                    visit(edge.dependency)
            visiting.discard(construct_path)
            visited.add(construct_path)
            ordered.append(construct)

        for construct in constructs:
            if construct.node.path not in visited:
                visit(construct)

        logger.debug(
            "Dependency order: %s", ", ".join(c.node.path for c in ordered)
        )
        return ordered

    def get_ordered_resources(
        self, constructs: Iterable[Construct]
    ) -> list[KubernetesResource]:
        """Resources among ``constructs``, in dependency order."""
        resources = [c for c in constructs if isinstance(c, KubernetesResource)]
        return [
            c
            for c in self.order_constructs(resources)
            if isinstance(c, KubernetesResource)
        ]
