"""
Metadata propagation for consistent labeling and namespace inheritance.

Resources inherit namespace, labels and annotations from the nearest
enclosing stack. Labels are merged as ordered layers, lowest precedence
first: automatic labels, stack labels, additional labels, and finally the
labels given directly in the resource's own metadata.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as ModelValidationError

from konverge.core import naming
from konverge.core.construct import Construct
from konverge.core.metadata import ObjectMeta, merge_layers
from konverge.core.types import StringMap

if TYPE_CHECKING:
    from konverge.core.stack import Stack


@dataclass
class PropagationOptions:
    """Options controlling what is inherited from the enclosing stack."""

    inherit_namespace: bool = True
    inherit_labels: bool = True
    add_annotations: bool = True
    additional_labels: StringMap = field(default_factory=dict)
    additional_annotations: StringMap = field(default_factory=dict)


@dataclass
class PropagatedMetadata:
    """Result of propagating metadata onto a construct."""

    metadata: ObjectMeta
    source_stack: "Stack | None"
    namespace_inherited: bool
    inherited_labels_count: int


def propagate_metadata(
    construct: Construct,
    base_metadata: ObjectMeta | Mapping[str, Any] | None = None,
    options: PropagationOptions | None = None,
) -> PropagatedMetadata:
    """
    Compute the complete metadata for a construct.

    The namespace is taken from the enclosing stack only when the base
    metadata does not set one; an explicit namespace is never overwritten.

    Params:
        construct: The construct to propagate metadata onto
        base_metadata: Metadata given directly by the resource
        options: Propagation options, defaults to ``PropagationOptions()``

    Returns:
        PropagatedMetadata with the merged metadata and inheritance details
    """
    options = options or PropagationOptions()
    base = ObjectMeta.coerce(base_metadata)
    source_stack = naming.find_parent_stack(construct)

    metadata = base.model_copy(deep=True)
    namespace_inherited = False
    inherited_labels_count = 0

    if (
        options.inherit_namespace
        and source_stack is not None
        and source_stack.namespace
        and not metadata.namespace
    ):
        metadata.namespace = source_stack.namespace
        namespace_inherited = True

    stack_labels: StringMap = {}
    if options.inherit_labels and source_stack is not None:
        stack_labels = source_stack.labels
        inherited_labels_count = len(stack_labels)

    metadata.labels = merge_layers(
        naming.generate_labels(construct),
        stack_labels,
        options.additional_labels,
        base.labels,
    )

    automatic_annotations = (
        naming.generate_annotations(construct) if options.add_annotations else {}
    )
    metadata.annotations = merge_layers(
        automatic_annotations,
        options.additional_annotations,
        base.annotations,
    )

    return PropagatedMetadata(
        metadata=metadata,
        source_stack=source_stack,
        namespace_inherited=namespace_inherited,
        inherited_labels_count=inherited_labels_count,
    )


def validate_metadata(metadata: ObjectMeta | Mapping[str, Any]) -> list[str]:
    """
    Check metadata against the Kubernetes naming and label grammars.

    Params:
        metadata: Metadata model or manifest ``metadata`` mapping

    Returns:
        Human-readable violations, empty when the metadata is valid;
        malformed input is reported as violations rather than raised
    """
    if not isinstance(metadata, (ObjectMeta, Mapping)):
        return [f"Metadata must be a mapping, got {type(metadata).__name__}"]

    try:
        meta = ObjectMeta.coerce(metadata)
    except ModelValidationError as e:
        return [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]

    errors: list[str] = []

    if meta.name:
        result = naming.validate_resource_name(meta.name)
        errors.extend(f"Name: {error}" for error in result.errors)

    if meta.namespace:
        result = naming.validate_resource_name(meta.namespace)
        errors.extend(f"Namespace: {error}" for error in result.errors)

    for key, value in meta.labels.items():
        key_result = naming.validate_label_key(key)
        errors.extend(f'Label key "{key}": {error}' for error in key_result.errors)
        value_result = naming.validate_label_value(value)
        errors.extend(
            f'Label value for "{key}": {error}' for error in value_result.errors
        )

    return errors


def ensure_consistent_labeling(stack: "Stack") -> dict[str, StringMap]:
    """Expected labels for every construct in a stack, keyed by path."""
    return {
        construct.node.path: merge_layers(
            naming.generate_labels(construct), stack.labels
        )
        for construct in stack.node.find_all()
    }


def detect_label_inconsistencies(stack: "Stack") -> list[str]:
    """
    Report constructs whose node metadata disagrees with the stack's labels.

    Params:
        stack: The stack to inspect

    Returns:
        One warning per conflicting label
    """
    warnings = []
    expected_labels = ensure_consistent_labeling(stack)

    for construct in stack.node.find_all():
        expected = expected_labels.get(construct.node.path)
        if not expected:
            continue
        actual_labels = construct.node.get_metadata("labels") or {}
        for key, expected_value in expected.items():
            actual_value = actual_labels.get(key)
            if actual_value and actual_value != expected_value:
                warnings.append(
                    f'Construct {construct.node.path} has inconsistent label "{key}": '
                    f'expected "{expected_value}", got "{actual_value}"'
                )

    return warnings


def apply_namespace_propagation(stack: "Stack", namespace: str | None = None) -> None:
    """Fill in the namespace of every resource in the stack that has none."""
    namespace = namespace or stack.namespace
    if not namespace:
        return

    for construct in stack.node.find_all():
        metadata = getattr(construct, "metadata", None)
        if isinstance(metadata, ObjectMeta) and not metadata.namespace:
            metadata.namespace = namespace
