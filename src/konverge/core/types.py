"""
Core type definitions for Konverge.

This module contains fundamental type aliases used throughout Konverge
for type safety and consistency.
"""

from enum import Enum
from typing import Any


class DependencyType(Enum):
    """Kinds of dependency relationships between constructs."""

    CREATION_ORDER = "creation-order"  # dependency must be created first
    RUNTIME_REFERENCE = "runtime-reference"
    CONFIGURATION = "configuration"
    NETWORK = "network"
    CUSTOM = "custom"

# A synthesized Kubernetes document: apiVersion, kind, metadata, spec, ...
Manifest = dict[str, Any]

StringMap = dict[str, str]

MANAGED_BY = "konverge"

# Annotation keys stamped by the synthesizer
SYNTHESIZED_AT_ANNOTATION = "konverge.io/synthesized-at"
CONSTRUCT_PATH_ANNOTATION = "konverge.io/construct-path"

STACK_NAME_KEY = "konverge.io/stack-name"
STACK_NAMESPACE_ANNOTATION = "konverge.io/stack-namespace"
CONSTRUCT_ID_LABEL = "konverge.io/construct-id"
NAME_LABEL = "app.kubernetes.io/name"
MANAGED_BY_LABEL = "app.kubernetes.io/managed-by"
