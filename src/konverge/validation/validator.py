"""
Rule-based validation of construct trees and Kubernetes resources.

A Validator applies the rules of a RuleRegistry to every construct of a
tree, together with fixed structural checks. Problems are collected into
a ValidationResult instead of being raised, so callers decide whether
warnings are fatal. A rule that raises is reported as a
RULE_EXECUTION_FAILED problem and the walk continues.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from attrs import frozen

from konverge.core import naming
from konverge.core.construct import Construct
from konverge.core.metadata_propagation import validate_metadata
from konverge.core.resource import KubernetesResource
from konverge.core.types import Manifest
from konverge.exceptions import RuleExecutionFailure
from konverge.validation.problems import (
    Severity,
    ValidationProblem,
    ValidationResult,
    create_problem,
)
from konverge.validation.schema import SchemaValidator

logger = logging.getLogger(__name__)

CONSTRUCT_ID_REGEX = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9_-]*$")
CORE_API_VERSION_REGEX = re.compile(r"^v\d+(alpha\d+|beta\d+)?$")
GROUP_API_VERSION_REGEX = re.compile(r"^[a-z0-9.-]+/v\d+(alpha\d+|beta\d+)?$")
KIND_REGEX = re.compile(r"^[A-Z][a-zA-Z0-9]*$")


@dataclass
class ValidationContext:
    """What a rule is looking at."""

    construct: Construct
    path: str
    data: dict[str, Any] = field(default_factory=dict)


RuleFunction = Callable[[Construct, ValidationContext], list[ValidationProblem]]


@frozen
class ValidationRule:
    """A named, pure validation check applied to every construct."""

    id: str
    description: str
    validate: RuleFunction


@dataclass
class ValidationOptions:
    """Options controlling a validation pass."""

    include_warnings: bool = True
    include_info: bool = False
    max_errors: int | None = None
    recursive: bool = True
    custom_rules: list[ValidationRule] = field(default_factory=list)
    skip_rules: list[str] = field(default_factory=list)


class RuleRegistry:
    """
    Ordered collection of validation rules.

    Every new registry contains the built-in rules unless
    ``include_builtins`` is false.
    """

    def __init__(self, include_builtins: bool = True):
        self._rules: list[ValidationRule] = []
        if include_builtins:
            for rule in BUILTIN_RULES:
                self.register_rule(rule)

    def register_rule(self, rule: ValidationRule) -> None:
        """Add a rule, replacing an existing rule with the same id in place."""
        for index, existing in enumerate(self._rules):
            if existing.id == rule.id:
                self._rules[index] = rule
                return
        self._rules.append(rule)

    def unregister_rule(self, rule_id: str) -> None:
        self._rules = [rule for rule in self._rules if rule.id != rule_id]

    def get_rule(self, rule_id: str) -> ValidationRule | None:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    @property
    def rules(self) -> list[ValidationRule]:
        return list(self._rules)


class Validator:
    """Validates construct trees, resources and finished manifests."""

    def __init__(
        self,
        rule_registry: RuleRegistry | None = None,
        schema_validator: SchemaValidator | None = None,
    ):
        self.rule_registry = rule_registry if rule_registry is not None else RuleRegistry()
        self.schema_validator = (
            schema_validator if schema_validator is not None else SchemaValidator()
        )

    def validate_construct(
        self, construct: Construct, options: ValidationOptions | None = None
    ) -> ValidationResult:
        """
        Validate a construct and, unless disabled, its whole subtree.

        Params:
            construct: Root of the validation walk
            options: Validation options, defaults to ``ValidationOptions()``

        Returns:
            ValidationResult with problems filtered by severity and limited
            to ``max_errors`` entries
        """
        options = options or ValidationOptions()
        rules = [
            rule
            for rule in self.rule_registry.rules + list(options.custom_rules)
            if rule.id not in options.skip_rules
        ]

        targets = construct.node.find_all() if options.recursive else iter([construct])
        problems: list[ValidationProblem] = []
        for target in targets:
            if options.max_errors and len(problems) >= options.max_errors:
                break
            self._validate_single(target, rules, problems)

        filtered = [p for p in problems if _included(p, options)]
        if options.max_errors:
            filtered = filtered[: options.max_errors]
        return ValidationResult.from_problems(filtered)

    def validate_kubernetes_resource(
        self, resource: KubernetesResource, options: ValidationOptions | None = None
    ) -> ValidationResult:
        """
        Validate a single resource together with the manifest it produces.

        Params:
            resource: The resource to validate
            options: Validation options; ``recursive`` is ignored

        Returns:
            ValidationResult covering construct rules and manifest checks
        """
        options = options or ValidationOptions()
        single = ValidationOptions(
            include_warnings=options.include_warnings,
            include_info=options.include_info,
            max_errors=options.max_errors,
            recursive=False,
            custom_rules=options.custom_rules,
            skip_rules=options.skip_rules,
        )
        problems = list(self.validate_construct(resource, single).errors)
        path = resource.node.path

        try:
            manifest = resource.to_manifest()
        except Exception as e:
            problems.append(
                create_problem(
                    f"Failed to generate manifest: {e}",
                    path,
                    Severity.ERROR,
                    "MANIFEST_GENERATION_FAILED",
                    "Ensure all required properties are set correctly",
                )
            )
        else:
            problems.extend(self.validate_manifest(manifest, path).errors)

        return ValidationResult.from_problems(problems)

    def validate_manifest(self, manifest: Manifest, path: str = "manifest") -> ValidationResult:
        """
        Check a finished manifest's structure, grammar and schema.

        Params:
            manifest: The document to check
            path: Prefix for the problem paths

        Returns:
            ValidationResult for the manifest
        """
        problems: list[ValidationProblem] = []
        api_version = manifest.get("apiVersion")
        kind = manifest.get("kind")
        metadata = manifest.get("metadata")

        if not api_version:
            problems.append(
                create_problem(
                    "Manifest must have an apiVersion",
                    f"{path}.apiVersion",
                    code="MISSING_API_VERSION",
                )
            )
        if not kind:
            problems.append(
                create_problem("Manifest must have a kind", f"{path}.kind", code="MISSING_KIND")
            )
        if not metadata:
            problems.append(
                create_problem(
                    "Manifest must have metadata", f"{path}.metadata", code="MISSING_METADATA"
                )
            )
            return ValidationResult.from_problems(problems)
        if not isinstance(metadata, dict):
            problems.append(
                create_problem(
                    f"Manifest metadata must be a mapping, got {type(metadata).__name__}",
                    f"{path}.metadata",
                    code="INVALID_METADATA",
                )
            )
            return ValidationResult.from_problems(problems)

        for error in validate_metadata(metadata):
            problems.append(
                create_problem(error, f"{path}.metadata", code="INVALID_METADATA")
            )

        if api_version and not is_valid_api_version(api_version):
            problems.append(
                create_problem(
                    f"Invalid API version format: {api_version}",
                    f"{path}.apiVersion",
                    code="INVALID_API_VERSION_FORMAT",
                    context='API version should be in format "group/version" '
                    'or just "version" for core resources',
                )
            )
        if kind and not is_valid_kind(kind):
            problems.append(
                create_problem(
                    f"Invalid kind format: {kind}",
                    f"{path}.kind",
                    code="INVALID_KIND_FORMAT",
                    context="Kind should be a valid Kubernetes resource type",
                )
            )

        problems.extend(self.schema_validator.validate_manifest(manifest, path).errors)
        return ValidationResult.from_problems(problems)

    def _validate_single(
        self,
        construct: Construct,
        rules: list[ValidationRule],
        problems: list[ValidationProblem],
    ) -> None:
        context = ValidationContext(construct, construct.node.path)

        for rule in rules:
            try:
                problems.extend(rule.validate(construct, context))
            except Exception as e:
                failure = RuleExecutionFailure(rule.id, e)
                logger.warning("%s at %s", failure, context.path)
                problems.append(
                    create_problem(
                        str(failure),
                        context.path,
                        Severity.ERROR,
                        "RULE_EXECUTION_FAILED",
                        f"Rule: {rule.description}",
                    )
                )

        _check_structure(construct, context, problems)
        if isinstance(construct, KubernetesResource):
            _check_resource(construct, context, problems)


def is_valid_api_version(api_version: str) -> bool:
    return bool(
        CORE_API_VERSION_REGEX.fullmatch(api_version)
        or GROUP_API_VERSION_REGEX.fullmatch(api_version)
    )


def is_valid_kind(kind: str) -> bool:
    return bool(KIND_REGEX.fullmatch(kind))


def _included(problem: ValidationProblem, options: ValidationOptions) -> bool:
    if problem.severity is Severity.WARNING:
        return options.include_warnings
    if problem.severity is Severity.INFO:
        return options.include_info
    return True


def _check_structure(
    construct: Construct, context: ValidationContext, problems: list[ValidationProblem]
) -> None:
    construct_id = construct.node.id
    if not construct_id:
        problems.append(
            create_problem(
                "Construct must have a valid ID", context.path, code="MISSING_CONSTRUCT_ID"
            )
        )
    if not CONSTRUCT_ID_REGEX.fullmatch(construct_id or ""):
        problems.append(
            create_problem(
                "Invalid construct ID: must start with alphanumeric character and "
                "contain only alphanumeric characters, underscores, and hyphens",
                context.path,
                code="INVALID_CONSTRUCT_ID",
                context="Construct IDs should be valid identifiers",
            )
        )
    if _has_tree_cycle(construct):
        problems.append(
            create_problem(
                "Circular dependency detected in construct tree",
                context.path,
                code="CIRCULAR_DEPENDENCY",
                context="Check for constructs that reference each other in a cycle",
            )
        )


def _has_tree_cycle(construct: Construct) -> bool:
    visited: set[int] = set()
    on_stack: set[int] = set()

    def visit(current: Construct) -> bool:
        key = id(current)
        if key in on_stack:
            return True
        if key in visited:
            return False
        visited.add(key)
        on_stack.add(key)
        for child in current.node.children:
            if visit(child):
                return True
        on_stack.discard(key)
        return False

    return visit(construct)


def _check_resource(
    resource: KubernetesResource,
    context: ValidationContext,
    problems: list[ValidationProblem],
) -> None:
    if not getattr(resource, "api_version", None) or not getattr(resource, "kind", None):
        problems.append(
            create_problem(
                "Kubernetes resource must have both apiVersion and kind",
                context.path,
                code="MISSING_RESOURCE_TYPE",
            )
        )

    metadata = getattr(resource, "metadata", None)
    if metadata is None:
        problems.append(
            create_problem(
                "Kubernetes resource must have metadata",
                context.path,
                code="MISSING_RESOURCE_METADATA",
            )
        )
        return

    for error in validate_metadata(metadata):
        problems.append(
            create_problem(
                f"Resource metadata validation failed: {error}",
                f"{context.path}.metadata",
                code="INVALID_RESOURCE_METADATA",
            )
        )

    scope = resource.node.scope
    if scope is None or not metadata.name:
        return
    for sibling in scope.node.children:
        if sibling is resource or not isinstance(sibling, KubernetesResource):
            continue
        if sibling.metadata.name == metadata.name and sibling.kind == resource.kind:
            problems.append(
                create_problem(
                    f"Duplicate resource name '{metadata.name}' for kind "
                    f"'{resource.kind}' in scope '{scope.node.path}'",
                    context.path,
                    code="DUPLICATE_RESOURCE_NAME",
                    context=f"Conflicting resource at: {sibling.node.path}",
                )
            )


def _required_metadata_name(
    construct: Construct, context: ValidationContext
) -> list[ValidationProblem]:
    if isinstance(construct, KubernetesResource) and not construct.metadata.name:
        return [
            create_problem(
                "Kubernetes resource must have a name in metadata",
                f"{context.path}.metadata.name",
                code="MISSING_RESOURCE_NAME",
            )
        ]
    return []


def _valid_label_format(
    construct: Construct, context: ValidationContext
) -> list[ValidationProblem]:
    if not isinstance(construct, KubernetesResource):
        return []

    problems = []
    for key, value in construct.metadata.labels.items():
        key_result = naming.validate_label_key(key)
        if not key_result.is_valid:
            problems.append(
                create_problem(
                    f"Invalid label key '{key}': {', '.join(key_result.errors)}",
                    f"{context.path}.metadata.labels.{key}",
                    code="INVALID_LABEL_KEY",
                )
            )
        value_result = naming.validate_label_value(value)
        if not value_result.is_valid:
            problems.append(
                create_problem(
                    f"Invalid label value for '{key}': {', '.join(value_result.errors)}",
                    f"{context.path}.metadata.labels.{key}",
                    code="INVALID_LABEL_VALUE",
                )
            )
    return problems


BUILTIN_RULES = [
    ValidationRule(
        "required-metadata-name",
        "Ensures all Kubernetes resources have a name in metadata",
        _required_metadata_name,
    ),
    ValidationRule(
        "valid-label-format",
        "Validates that all labels follow Kubernetes conventions",
        _valid_label_format,
    ),
]
