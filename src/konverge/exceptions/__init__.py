"""
Konverge exception classes.

This package provides all exception types used throughout Konverge
for consistent error handling and reporting.
"""

from konverge.exceptions.core import (
    CircularDependencyError,
    ConstructConfigurationError,
    DuplicateIdError,
    KonvergeError,
    ManifestError,
    NameCollisionUnresolvedError,
    RuleExecutionFailure,
    ValidationError,
)

__all__ = [
    "KonvergeError",
    "DuplicateIdError",
    "NameCollisionUnresolvedError",
    "CircularDependencyError",
    "ValidationError",
    "RuleExecutionFailure",
    "ManifestError",
    "ConstructConfigurationError",
]
