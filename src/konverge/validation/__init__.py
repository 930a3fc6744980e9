"""
Validation of construct trees, resources and manifests.
"""

from konverge.validation.problems import (
    Severity,
    ValidationProblem,
    ValidationResult,
    create_problem,
)
from konverge.validation.schema import (
    PropertySchema,
    ResourceSchema,
    SchemaRegistry,
    SchemaValidationResult,
    SchemaValidator,
)
from konverge.validation.validator import (
    RuleRegistry,
    ValidationContext,
    ValidationOptions,
    ValidationRule,
    Validator,
)

__all__ = [
    "PropertySchema",
    "ResourceSchema",
    "RuleRegistry",
    "SchemaRegistry",
    "SchemaValidationResult",
    "SchemaValidator",
    "Severity",
    "ValidationContext",
    "ValidationOptions",
    "ValidationProblem",
    "ValidationResult",
    "ValidationRule",
    "Validator",
    "create_problem",
]
