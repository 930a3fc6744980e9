"""
Synthesis of construct trees into ordered Kubernetes manifests.

One synthesis run collects every construct of a subtree, rebuilds the
dependency edges in a fresh DependencyTracker, rejects cycles, and then
validates and renders each resource in dependency order. The run is
fail-fast: the first invalid resource aborts it.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from konverge.config import SynthesisConfig
from konverge.core.construct import Construct
from konverge.core.dependency_tracker import DependencyTracker
from konverge.core.resource import KubernetesResource
from konverge.core.types import (
    CONSTRUCT_PATH_ANNOTATION,
    SYNTHESIZED_AT_ANNOTATION,
    Manifest,
)
from konverge.exceptions import CircularDependencyError, ValidationError
from konverge.validation.problems import Severity
from konverge.validation.schema import SchemaValidator

logger = logging.getLogger(__name__)

# Presentation order by kind; unlisted kinds sort last
RESOURCE_PRIORITY: dict[str, int] = {
    "Namespace": 0,
    "ServiceAccount": 1,
    "Secret": 2,
    "ConfigMap": 3,
    "PersistentVolume": 4,
    "PersistentVolumeClaim": 5,
    "Role": 6,
    "ClusterRole": 7,
    "RoleBinding": 8,
    "ClusterRoleBinding": 9,
    "Service": 10,
    "Deployment": 11,
    "StatefulSet": 12,
    "DaemonSet": 13,
    "Job": 14,
    "CronJob": 15,
    "Ingress": 16,
}
DEFAULT_PRIORITY = 999

DEFAULT_NAMESPACE = "default"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Synthesizer:
    """
    Drives synthesis runs.

    A Synthesizer holds no per-run state: every call to ``synthesize``
    creates its own DependencyTracker unless one is passed in.
    """

    def __init__(
        self,
        config: SynthesisConfig | None = None,
        schema_validator: SchemaValidator | None = None,
        clock: Clock | None = None,
    ):
        """
        Params:
            config: Synthesis settings, defaults to ``SynthesisConfig()``
            schema_validator: Schema checker used when schema validation is
                enabled; a validator with the built-in schemas by default
            clock: Source of the synthesis timestamp
        """
        self.config = config or SynthesisConfig()
        self.schema_validator = schema_validator or SchemaValidator()
        self.clock = clock or utc_now

    def synthesize(
        self, construct: Construct, tracker: DependencyTracker | None = None
    ) -> list[Manifest]:
        """
        Synthesize every resource under ``construct``.

        Params:
            construct: Root of the subtree to synthesize
            tracker: Dependency tracker for this run; a fresh one by default

        Returns:
            Manifests in dependency order

        Raises:
            CircularDependencyError: If the dependency edges contain a cycle
            ValidationError: If a resource or its manifest is invalid
        """
        tracker = tracker if tracker is not None else DependencyTracker()
        logger.info("Synthesizing %s", construct.node.path)

        constructs = list(construct.node.find_all())
        tracker.auto_detect_dependencies(constructs)

        cycles = tracker.detect_circular_dependencies(construct)
        if cycles:
            raise CircularDependencyError(cycles=cycles)

        manifests = [
            self.generate_manifest(resource)
            for resource in tracker.get_ordered_resources(constructs)
        ]
        logger.info(
            "Synthesized %d manifests from %s", len(manifests), construct.node.path
        )
        return manifests

    def generate_manifest(self, resource: KubernetesResource) -> Manifest:
        """
        Validate a resource and render its manifest.

        Params:
            resource: The resource to render

        Returns:
            The manifest, stamped with the synthesis annotations

        Raises:
            ValidationError: If the resource or the finished manifest is invalid
        """
        path = resource.node.path
        errors = resource.validate()
        if errors:
            raise ValidationError(path, errors)

        manifest = resource.produce_document()
        self._stamp(manifest, path)
        self._check_structure(manifest, path)
        if self.config.validate_schemas:
            self._check_schema(manifest, path)
        return manifest

    def _stamp(self, manifest: Manifest, path: str) -> None:
        metadata = manifest.get("metadata")
        if not isinstance(metadata, dict):
            return
        metadata["annotations"] = {
            **(metadata.get("annotations") or {}),
            SYNTHESIZED_AT_ANNOTATION: format_timestamp(self.clock()),
            CONSTRUCT_PATH_ANNOTATION: path,
        }

    def _check_structure(self, manifest: Manifest, path: str) -> None:
        if not manifest.get("apiVersion"):
            raise ValidationError(path, ["Manifest must have an apiVersion"])
        if not manifest.get("kind"):
            raise ValidationError(path, ["Manifest must have a kind"])
        metadata = manifest.get("metadata")
        if not isinstance(metadata, dict):
            raise ValidationError(path, ["Manifest must have metadata"])
        if not metadata.get("name"):
            raise ValidationError(path, ["Manifest metadata must have a name"])

    def _check_schema(self, manifest: Manifest, path: str) -> None:
        result = self.schema_validator.validate_manifest(manifest, path)
        if not result.is_valid:
            raise ValidationError(
                path,
                [
                    f"{problem.path}: {problem.message}"
                    for problem in result.errors
                    if problem.severity is Severity.ERROR
                ],
            )

    @staticmethod
    def order_resources(manifests: Iterable[Manifest]) -> list[Manifest]:
        """
        Sort manifests for presentation.

        Kinds follow RESOURCE_PRIORITY; manifests of equal priority are
        sorted by name. The input is not modified.

        Params:
            manifests: Manifests in any order

        Returns:
            A new, deterministically ordered list
        """
        return sorted(manifests, key=_presentation_key)

    @staticmethod
    def resolve_dependencies(manifests: Iterable[Manifest]) -> "DependencyGraph":
        """
        Build a dependency graph by inspecting finished manifests.

        Deployments depend on the ConfigMaps referenced by their container
        environment and volumes, and on the Secrets referenced by volumes,
        when those objects are among ``manifests`` in the same namespace.

        Params:
            manifests: Synthesized manifests

        Returns:
            DependencyGraph over the manifests
        """
        manifests = list(manifests)
        graph = DependencyGraph()
        for manifest in manifests:
            graph.add_node(resource_id(manifest), manifest)

        for manifest in manifests:
            dependent = resource_id(manifest)
            for dependency in _find_references(manifest, manifests):
                graph.add_edge(dependency, dependent)

        return graph


def _presentation_key(manifest: Manifest) -> tuple[int, str]:
    priority = RESOURCE_PRIORITY.get(manifest.get("kind", ""), DEFAULT_PRIORITY)
    name = (manifest.get("metadata") or {}).get("name") or ""
    return priority, name


def resource_id(manifest: Manifest) -> str:
    """``<namespace>/<kind>/<name>``, with ``default`` for a missing namespace."""
    metadata = manifest.get("metadata") or {}
    namespace = metadata.get("namespace") or DEFAULT_NAMESPACE
    return f"{namespace}/{manifest.get('kind')}/{metadata.get('name')}"


def _find_references(manifest: Manifest, manifests: list[Manifest]) -> list[str]:
    if manifest.get("kind") != "Deployment":
        return []

    pod_spec = ((manifest.get("spec") or {}).get("template") or {}).get("spec")
    if not pod_spec:
        return []

    namespace = (manifest.get("metadata") or {}).get("namespace")
    references: list[str] = []

    def add(kind: str, name: str | None) -> None:
        if not name:
            return
        found = _find_by_name(kind, name, namespace, manifests)
        if found is not None:
            references.append(found)

    for container in pod_spec.get("containers") or []:
        for env_var in container.get("env") or []:
            key_ref = (env_var.get("valueFrom") or {}).get("configMapKeyRef") or {}
            add("ConfigMap", key_ref.get("name"))
        for env_from in container.get("envFrom") or []:
            add("ConfigMap", (env_from.get("configMapRef") or {}).get("name"))

    for volume in pod_spec.get("volumes") or []:
        add("ConfigMap", (volume.get("configMap") or {}).get("name"))
        add("Secret", (volume.get("secret") or {}).get("secretName"))

    return references


def _find_by_name(
    kind: str, name: str, namespace: str | None, manifests: list[Manifest]
) -> str | None:
    target_namespace = namespace or DEFAULT_NAMESPACE
    for candidate in manifests:
        metadata = candidate.get("metadata") or {}
        if (
            candidate.get("kind") == kind
            and metadata.get("name") == name
            and (metadata.get("namespace") or DEFAULT_NAMESPACE) == target_namespace
        ):
            return resource_id(candidate)
    return None


class DependencyGraph:
    """Graph of manifests keyed by resource id; edges point from dependency to dependent."""

    def __init__(self):
        self._nodes: dict[str, Manifest] = {}
        self._edges: dict[str, list[str]] = {}

    def add_node(self, node_id: str, manifest: Manifest) -> None:
        self._nodes[node_id] = manifest
        self._edges.setdefault(node_id, [])

    def add_edge(self, dependency: str, dependent: str) -> None:
        targets = self._edges.setdefault(dependency, [])
        self._edges.setdefault(dependent, [])
        if dependent not in targets:
            targets.append(dependent)

    def get_all_nodes(self) -> list[Manifest]:
        return list(self._nodes.values())

    def get_dependencies(self, node_id: str) -> list[str]:
        """Ids of the nodes that ``node_id`` depends on."""
        return [source for source, targets in self._edges.items() if node_id in targets]

    def get_dependents(self, node_id: str) -> list[str]:
        return list(self._edges.get(node_id, []))

    def topological_sort(self) -> list[Manifest]:
        """
        Manifests ordered so that every dependency precedes its dependents.

        Raises:
            CircularDependencyError: If the graph contains a cycle
        """
        visited: set[str] = set()
        visiting: set[str] = set()
        finished: list[str] = []

        def visit(node_id: str) -> None:
            if node_id in visiting:
                raise CircularDependencyError(node_id)
            if node_id in visited:
                return
            visiting.add(node_id)
            for dependent in self._edges.get(node_id, []):
                visit(dependent)
            visiting.discard(node_id)
            visited.add(node_id)
            finished.append(node_id)

        for node_id in list(self._nodes):
            if node_id not in visited:
                visit(node_id)

        return [self._nodes[n] for n in reversed(finished) if n in self._nodes]

    def to_dict(self) -> dict[str, Any]:
        """Adjacency view for tooling: each node id with the ids it depends on."""
        return {node_id: self.get_dependencies(node_id) for node_id in self._nodes}
