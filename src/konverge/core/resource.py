"""
Base class for constructs that produce a Kubernetes manifest.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from konverge.core import naming
from konverge.core.construct import Construct
from konverge.core.metadata import ObjectMeta
from konverge.core.metadata_propagation import (
    PropagationOptions,
    propagate_metadata,
    validate_metadata,
)
from konverge.core.types import Manifest


class KubernetesResource(Construct, ABC):
    """
    A construct that synthesizes into exactly one Kubernetes document.

    The resource name and base labels are computed once at construction:
    a generated name is collision-resolved against sibling resources, while
    an explicitly supplied name is kept as given. Labels and annotations on
    ``metadata`` may still be changed by application code before synthesis.

    Subclasses set ``api_version`` and ``kind`` as class attributes and
    implement ``to_manifest``.
    """

    api_version: ClassVar[str]
    kind: ClassVar[str]

    def __init__(
        self,
        scope: Construct,
        id: str,
        metadata: ObjectMeta | Mapping[str, Any] | None = None,
    ):
        """
        Params:
            scope: The owning construct
            id: Identifier, unique among the scope's children
            metadata: Explicit metadata; labels and annotations given here
                take precedence over inherited ones
        """
        super().__init__(scope, id)

        self._given_metadata = ObjectMeta.coerce(metadata)
        base = self._given_metadata.model_copy(deep=True)
        if not base.name:
            base.name = naming.generate_unique_resource_name(self)

        self.metadata: ObjectMeta = propagate_metadata(self, base).metadata

    def validate(self) -> list[str]:
        """
        Check the resource's configuration.

        Subclasses extend the returned list with their own checks.

        Returns:
            Human-readable problems, empty when the resource is valid
        """
        errors = validate_metadata(self.get_complete_metadata())
        if not self.metadata.name:
            errors.append("Resource name is required")
        return errors

    def get_complete_metadata(self) -> ObjectMeta:
        """Metadata re-propagated from the enclosing stack, with explicit values on top."""
        options = PropagationOptions(
            additional_labels=dict(self._given_metadata.labels),
            additional_annotations=dict(self._given_metadata.annotations),
        )
        return propagate_metadata(self, self.metadata, options).metadata

    def create_base_manifest(self) -> Manifest:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self.get_complete_metadata().to_dict(),
        }

    @abstractmethod
    def to_manifest(self) -> Manifest:
        """Produce the Kubernetes document for this resource."""
        raise NotImplementedError

    def produce_document(self) -> Manifest:
        return self.to_manifest()
