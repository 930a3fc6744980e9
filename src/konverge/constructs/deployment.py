"""
Deployment construct.
"""

import copy
from collections.abc import Mapping
from typing import Any

from konverge.core.construct import Construct
from konverge.core.metadata import ObjectMeta, merge_layers
from konverge.core.resource import KubernetesResource
from konverge.core.types import Manifest
from konverge.exceptions import ConstructConfigurationError

Container = dict[str, Any]


class Deployment(KubernetesResource):
    """
    Declarative updates for pods.

    The selector's ``matchLabels`` must agree with the pod template labels;
    this is checked when the deployment is created.
    """

    api_version = "apps/v1"
    kind = "Deployment"

    def __init__(
        self,
        scope: Construct,
        id: str,
        selector: Mapping[str, Any],
        template: Mapping[str, Any],
        replicas: int = 1,
        min_ready_seconds: int | None = None,
        revision_history_limit: int | None = None,
        progress_deadline_seconds: int | None = None,
        metadata: ObjectMeta | Mapping[str, Any] | None = None,
    ):
        """
        Params:
            scope: The owning construct
            id: Identifier, unique among the scope's children
            selector: Label selector with ``matchLabels`` and/or
                ``matchExpressions``
            template: Pod template with ``metadata`` and ``spec``
            replicas: Desired number of pods
            min_ready_seconds: Seconds a new pod must be ready to count as available
            revision_history_limit: Old ReplicaSets kept for rollback
            progress_deadline_seconds: Seconds before a rollout is considered stuck
            metadata: Explicit metadata

        Raises:
            ConstructConfigurationError: If the selector does not match the
                template labels
        """
        super().__init__(scope, id, metadata)

        template = copy.deepcopy(dict(template))
        pod_spec = dict(template.get("spec") or {})
        self._containers: list[Container] = list(pod_spec.get("containers") or [])
        pod_spec["containers"] = self._containers
        template["spec"] = pod_spec

        self._spec: dict[str, Any] = {
            "replicas": replicas,
            "selector": copy.deepcopy(dict(selector)),
            "template": template,
        }
        if min_ready_seconds is not None:
            self._spec["minReadySeconds"] = min_ready_seconds
        if revision_history_limit is not None:
            self._spec["revisionHistoryLimit"] = revision_history_limit
        if progress_deadline_seconds is not None:
            self._spec["progressDeadlineSeconds"] = progress_deadline_seconds

        self._check_selector_matches_template()

    @property
    def containers(self) -> list[Container]:
        """The pod's containers; the container mappings themselves are live."""
        return list(self._containers)

    @property
    def spec(self) -> dict[str, Any]:
        return copy.deepcopy(self._spec)

    @property
    def replicas(self) -> int:
        return self._spec["replicas"]

    def add_container(self, container: Container) -> None:
        """
        Raises:
            ConstructConfigurationError: If a container with the same name exists
        """
        name = container.get("name")
        if any(existing.get("name") == name for existing in self._containers):
            raise ConstructConfigurationError(
                self.node.id, f"Container with name '{name}' already exists"
            )
        self._containers.append(container)

    def set_replicas(self, replicas: int) -> None:
        if replicas < 0:
            raise ConstructConfigurationError(
                self.node.id, "Replicas must be a non-negative number"
            )
        self._spec["replicas"] = replicas

    def update_template_metadata(self, metadata: Mapping[str, Any]) -> None:
        """Merge metadata into the pod template; labels and annotations merge key by key."""
        current = self._spec["template"].get("metadata") or {}
        updated = {**current, **metadata}
        updated["labels"] = merge_layers(current.get("labels"), metadata.get("labels"))
        updated["annotations"] = merge_layers(
            current.get("annotations"), metadata.get("annotations")
        )
        self._spec["template"]["metadata"] = updated

    def validate(self) -> list[str]:
        errors = super().validate()

        if self._spec["replicas"] < 0:
            errors.append("Replicas must be a non-negative number")

        if not self._containers:
            errors.append("Deployment must have at least one container")

        seen = set()
        for container in self._containers:
            name = container.get("name")
            if name in seen:
                errors.append(f"Duplicate container name '{name}'")
            seen.add(name)
            if not container.get("image"):
                errors.append(f"Container '{name}' must have an image")

        selector = self._spec["selector"]
        if not selector.get("matchLabels") and not selector.get("matchExpressions"):
            errors.append("Selector must have either matchLabels or matchExpressions")

        template_metadata = self._spec["template"].get("metadata") or {}
        if not template_metadata.get("labels"):
            errors.append("Template metadata must include labels")

        return errors

    def to_manifest(self) -> Manifest:
        manifest = self.create_base_manifest()
        manifest["spec"] = copy.deepcopy(self._spec)
        return manifest

    def _check_selector_matches_template(self) -> None:
        selector_labels = self._spec["selector"].get("matchLabels") or {}
        template_metadata = self._spec["template"].get("metadata") or {}
        template_labels = template_metadata.get("labels") or {}

        for key, value in selector_labels.items():
            if template_labels.get(key) != value:
                raise ConstructConfigurationError(
                    self.node.id,
                    f"Selector label '{key}={value}' does not match template label "
                    f"'{key}={template_labels.get(key)}'",
                )
