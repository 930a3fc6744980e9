"""
Construct tree model for Konverge.

A construct is a node in an ownership tree. Every construct is attached to
its scope exactly once, at construction time, and cannot be re-parented, so
the tree is acyclic and every path is unique.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Optional

from konverge.core.types import DependencyType
from konverge.exceptions import DuplicateIdError

PATH_SEPARATOR = "/"


@dataclass(frozen=True)
class ExplicitDependency:
    """A dependency declared directly on a construct node."""

    target: "Construct"
    dependency_type: DependencyType
    description: str | None = None


class Construct:
    """
    Base class for every node in the construct tree.

    Constructs represent a "cloud component" and encapsulate everything
    needed to create one or more Kubernetes resources.
    """

    def __init__(self, scope: Optional["Construct"], id: str):
        """
        Create a construct and attach it to its scope.

        Params:
            scope: The owning construct, or None for a root
            id: Identifier, unique among the scope's children

        Raises:
            DuplicateIdError: If the scope already has a child with this id
        """
        self.node = ConstructNode(self, scope, id)
        if scope is not None:
            scope.node.add_child(self)

    def __str__(self) -> str:
        return self.node.path or self.node.id

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.node.path!r})"


class ConstructNode:
    """Tree bookkeeping for a single construct."""

    def __init__(self, construct: Construct, scope: Construct | None, id: str):
        self.construct = construct
        self.scope = scope
        self.id = id
        self._children: list[Construct] = []
        self._metadata: dict[str, Any] = {}
        self._dependencies: list[ExplicitDependency] = []

    @property
    def path(self) -> str:
        """Slash-separated ids from the root down to this construct."""
        if self.scope is None:
            return self.id
        return f"{self.scope.node.path}{PATH_SEPARATOR}{self.id}"

    @property
    def children(self) -> list[Construct]:
        return list(self._children)

    @property
    def root(self) -> Construct:
        current = self.construct
        while current.node.scope is not None:
            current = current.node.scope
        return current

    def add_child(self, child: Construct) -> None:
        """
        Register a child construct under this node.

        Params:
            child: The construct to add

        Raises:
            DuplicateIdError: If a sibling with the same id already exists
        """
        if self.find_child(child.node.id) is not None:
            raise DuplicateIdError(child.node.id, str(self.construct))
        self._children.append(child)

    def find_child(self, id: str) -> Construct | None:
        for child in self._children:
            if child.node.id == id:
                return child
        return None

    def find_all(
        self, predicate: Callable[[Construct], bool] | None = None
    ) -> Iterator[Construct]:
        """
        Iterate the subtree depth-first in pre-order.

        The construct owning this node is yielded first when it matches.
        Every call returns a fresh generator.

        Params:
            predicate: Optional filter applied to every construct

        Returns:
            Lazy iterator over matching constructs
        """
        if predicate is None or predicate(self.construct):
            yield self.construct
        for child in list(self._children):
            yield from child.node.find_all(predicate)

    def set_metadata(self, key: str, value: Any) -> None:
        self._metadata[key] = value

    def get_metadata(self, key: str) -> Any:
        return self._metadata.get(key)

    @property
    def metadata(self) -> dict[str, Any]:
        return dict(self._metadata)

    def add_dependency(
        self,
        target: Construct,
        dependency_type: DependencyType = DependencyType.CREATION_ORDER,
        description: str | None = None,
    ) -> None:
        """
        Declare that this construct depends on ``target``.

        Declared dependencies live on the node, so they are re-registered
        with every fresh dependency tracker at the start of a synthesis run.

        Params:
            target: The construct that must be available first
            dependency_type: Kind of relationship
            description: Optional human-readable reason
        """
        for existing in self._dependencies:
            if existing.target is target and existing.dependency_type == dependency_type:
                return
        self._dependencies.append(
            ExplicitDependency(target, dependency_type, description)
        )

    @property
    def dependencies(self) -> list[ExplicitDependency]:
        return list(self._dependencies)
