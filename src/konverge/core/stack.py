"""
Stacks: units of deployment whose resources share a namespace and labels.
"""

from typing import TYPE_CHECKING

from konverge.core.construct import Construct
from konverge.core.metadata import merge_layers
from konverge.core.resource import KubernetesResource
from konverge.core.types import (
    MANAGED_BY,
    MANAGED_BY_LABEL,
    STACK_NAME_KEY,
    Manifest,
    StringMap,
)

if TYPE_CHECKING:
    from konverge.core.app import App
    from konverge.core.synthesizer import Synthesizer


class Stack(Construct):
    """
    Enclosing scope that supplies a namespace and labels to its resources.

    Resources anywhere below a stack inherit its namespace unless they set
    their own, and carry its labels beneath their own labels.
    """

    def __init__(
        self,
        scope: "App",
        id: str,
        namespace: str | None = None,
        labels: StringMap | None = None,
    ):
        """
        Params:
            scope: The owning App
            id: Stack identifier, also used as the stack name
            namespace: Namespace for resources that do not set one
            labels: Labels applied to every resource in the stack
        """
        super().__init__(scope, id)
        self.stack_name = id
        self.namespace = namespace
        self.labels: StringMap = merge_layers(
            {MANAGED_BY_LABEL: MANAGED_BY, STACK_NAME_KEY: id},
            labels,
        )
        scope.add_stack(self)

    @property
    def resources(self) -> list[KubernetesResource]:
        """Every resource below this stack, in tree order."""
        return [
            construct
            for construct in self.node.find_all()
            if isinstance(construct, KubernetesResource)
        ]

    def synthesize(self, synthesizer: "Synthesizer | None" = None) -> list[Manifest]:
        """
        Synthesize this stack's resources and apply the stack metadata.

        Params:
            synthesizer: Synthesizer to use, a default one if omitted

        Returns:
            Manifests in dependency order
        """
        if synthesizer is None:
            from konverge.core.synthesizer import Synthesizer

            synthesizer = Synthesizer()

        manifests = synthesizer.synthesize(self)
        for manifest in manifests:
            self._apply_stack_metadata(manifest)
        return manifests

    def _apply_stack_metadata(self, manifest: Manifest) -> None:
        metadata = manifest.setdefault("metadata", {})
        if self.namespace and not metadata.get("namespace"):
            metadata["namespace"] = self.namespace
        metadata["labels"] = merge_layers(self.labels, metadata.get("labels"))
        metadata["annotations"] = merge_layers(
            {STACK_NAME_KEY: self.stack_name}, metadata.get("annotations")
        )
