"""
Exception classes for Konverge synthesis.

This module defines specific exception types for the error conditions
that can occur while building the construct tree, naming resources,
ordering dependencies, validating resources and writing manifests.
"""


class KonvergeError(Exception):
    """Base exception for all Konverge-related errors."""

    pass


class DuplicateIdError(KonvergeError):
    """Raised when a construct is added next to a sibling with the same id."""

    def __init__(self, construct_id: str, scope_path: str):
        """
        Initialize the exception.

        Params:
            construct_id: The id that is already taken
            scope_path: Path of the scope that already owns a child with this id
        """
        self.construct_id = construct_id
        self.scope_path = scope_path
        super().__init__(
            f"There is already a Construct with name '{construct_id}' in {scope_path}"
        )


class NameCollisionUnresolvedError(KonvergeError):
    """Raised when no collision-free resource name can be found."""

    def __init__(self, construct_path: str, attempts: int):
        """
        Initialize the exception.

        Params:
            construct_path: Path of the construct whose name collides
            attempts: Number of numeric suffixes tried before giving up
        """
        self.construct_path = construct_path
        self.attempts = attempts
        super().__init__(
            f"Unable to resolve name collision for construct {construct_path} after {attempts} attempts"
        )


class CircularDependencyError(KonvergeError):
    """Raised when dependency edges form a cycle."""

    def __init__(
        self,
        construct_path: str | None = None,
        cycles: list[list[str]] | None = None,
    ):
        """
        Initialize the exception.

        Params:
            construct_path: A construct path known to lie on a cycle
            cycles: Enumerated cycles, each a list of construct paths
        """
        self.construct_path = construct_path
        self.cycles = cycles or []

        if self.cycles:
            rendered = ", ".join(" -> ".join(cycle) for cycle in self.cycles)
            message = f"Circular dependencies detected: {rendered}"
        else:
            message = (
                f"Circular dependency detected involving construct: {construct_path}"
            )
        super().__init__(message)


class ValidationError(KonvergeError):
    """Raised when a resource or a generated manifest fails validation."""

    def __init__(self, construct_path: str, problems: list[str]):
        """
        Initialize the exception.

        Params:
            construct_path: Path of the construct that failed validation
            problems: Human-readable problem messages
        """
        self.construct_path = construct_path
        self.problems = list(problems)
        super().__init__(
            f"Validation failed for resource {construct_path}: {', '.join(self.problems)}"
        )


class RuleExecutionFailure(KonvergeError):
    """Raised when a registered validation rule itself fails.

    The validator captures this and reports it as a problem instead of
    letting it escape the tree walk.
    """

    def __init__(self, rule_id: str, cause: Exception):
        """
        Initialize the exception.

        Params:
            rule_id: Identifier of the failing rule
            cause: The exception raised inside the rule
        """
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"Validation rule '{rule_id}' failed: {cause}")


class ManifestError(KonvergeError):
    """Raised when a manifest is structurally unfit for writing."""

    def __init__(self, reason: str, manifest: dict | None = None):
        """
        Initialize the exception.

        Params:
            reason: Why the manifest was rejected
            manifest: The offending manifest, if available
        """
        self.reason = reason
        self.manifest = manifest
        super().__init__(reason)


class ConstructConfigurationError(KonvergeError):
    """Raised when a concrete construct receives invalid configuration."""

    def __init__(self, construct_id: str, reason: str):
        """
        Initialize the exception.

        Params:
            construct_id: Id of the construct being configured
            reason: Description of the invalid configuration
        """
        self.construct_id = construct_id
        self.reason = reason
        super().__init__(f"Invalid configuration for '{construct_id}': {reason}")
