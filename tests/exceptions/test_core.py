"""
Tests for the exception hierarchy.

This module checks that every exception derives from KonvergeError,
keeps its context attributes and renders a readable message.
"""

import pytest

from konverge.exceptions import (
    CircularDependencyError,
    ConstructConfigurationError,
    DuplicateIdError,
    KonvergeError,
    ManifestError,
    NameCollisionUnresolvedError,
    RuleExecutionFailure,
    ValidationError,
)


class TestHierarchy:
    """Tests for the common base class."""

    @pytest.mark.parametrize(
        "error",
        [
            DuplicateIdError("id", "App"),
            NameCollisionUnresolvedError("App/x", 1000),
            CircularDependencyError("App/x"),
            ValidationError("App/x", ["bad"]),
            RuleExecutionFailure("rule", ValueError("boom")),
            ManifestError("bad manifest"),
            ConstructConfigurationError("x", "bad"),
        ],
    )
    def test_all_errors_are_konverge_errors(self, error):
        assert isinstance(error, KonvergeError)


class TestMessages:
    """Tests for exception messages and attributes."""

    def test_duplicate_id(self):
        error = DuplicateIdError("config", "App/stack")
        assert str(error) == "There is already a Construct with name 'config' in App/stack"

    def test_name_collision(self):
        error = NameCollisionUnresolvedError("App/x", 1000)
        assert str(error) == (
            "Unable to resolve name collision for construct App/x after 1000 attempts"
        )

    def test_circular_dependency_with_path(self):
        error = CircularDependencyError("App/a")

        assert error.construct_path == "App/a"
        assert error.cycles == []
        assert str(error) == "Circular dependency detected involving construct: App/a"

    def test_circular_dependency_with_cycles(self):
        error = CircularDependencyError(cycles=[["App/a", "App/b", "App/a"]])
        assert str(error) == "Circular dependencies detected: App/a -> App/b -> App/a"

    def test_validation_error(self):
        error = ValidationError("App/x", ["first", "second"])

        assert error.problems == ["first", "second"]
        assert str(error) == "Validation failed for resource App/x: first, second"

    def test_rule_execution_failure_keeps_cause(self):
        cause = ValueError("boom")
        error = RuleExecutionFailure("my-rule", cause)

        assert error.cause is cause
        assert str(error) == "Validation rule 'my-rule' failed: boom"

    def test_manifest_error(self):
        manifest = {"kind": "ConfigMap"}
        error = ManifestError("missing name", manifest)

        assert error.manifest is manifest
        assert str(error) == "missing name"

    def test_construct_configuration_error(self):
        error = ConstructConfigurationError("web", "replicas must be positive")
        assert str(error) == "Invalid configuration for 'web': replicas must be positive"
