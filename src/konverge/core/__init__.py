"""
Core construct model and synthesis pipeline for Konverge.
"""

from konverge.core.construct import Construct, ConstructNode, ExplicitDependency
from konverge.core.metadata import ObjectMeta, merge_layers
from konverge.core.metadata_propagation import (
    PropagatedMetadata,
    PropagationOptions,
    apply_namespace_propagation,
    detect_label_inconsistencies,
    ensure_consistent_labeling,
    propagate_metadata,
    validate_metadata,
)
from konverge.core.naming import NameValidationResult, NamingOptions
from konverge.core.resource import KubernetesResource
from konverge.core.types import DependencyType, Manifest
from konverge.core.dependency_tracker import (
    ConstructDependency,
    DependencyHint,
    DependencyHintEdge,
    DependencyTracker,
)
from konverge.core.synthesizer import DependencyGraph, Synthesizer
from konverge.core.stack import Stack
from konverge.core.app import App, CloudAssembly, StackManifest

__all__ = [
    "App",
    "CloudAssembly",
    "Construct",
    "ConstructDependency",
    "ConstructNode",
    "DependencyGraph",
    "DependencyHint",
    "DependencyHintEdge",
    "DependencyTracker",
    "DependencyType",
    "ExplicitDependency",
    "KubernetesResource",
    "Manifest",
    "NameValidationResult",
    "NamingOptions",
    "ObjectMeta",
    "PropagatedMetadata",
    "PropagationOptions",
    "Stack",
    "StackManifest",
    "Synthesizer",
    "apply_namespace_propagation",
    "detect_label_inconsistencies",
    "ensure_consistent_labeling",
    "merge_layers",
    "propagate_metadata",
    "validate_metadata",
]
