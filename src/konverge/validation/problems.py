"""
Validation problem records and aggregated results.
"""

from collections.abc import Iterable
from enum import Enum

from attrs import field, frozen


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@frozen
class ValidationProblem:
    """A single finding reported by a validator."""

    message: str
    path: str
    severity: Severity = Severity.ERROR
    code: str = "VALIDATION_ERROR"
    context: str | None = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.path}: {self.message} ({self.code})"


def create_problem(
    message: str,
    path: str,
    severity: Severity = Severity.ERROR,
    code: str = "VALIDATION_ERROR",
    context: str | None = None,
) -> ValidationProblem:
    """Convenience constructor used by custom validation rules."""
    return ValidationProblem(message, path, Severity(severity), code, context)


@frozen
class ValidationResult:
    """
    Aggregated outcome of a validation pass.

    ``is_valid`` is true when there are no error-severity problems;
    warnings and info messages never make a result invalid.
    """

    is_valid: bool
    errors: list[ValidationProblem] = field(factory=list)
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    summary: str = ""

    @classmethod
    def from_problems(cls, problems: Iterable[ValidationProblem]) -> "ValidationResult":
        problems = list(problems)
        error_count = sum(1 for p in problems if p.severity is Severity.ERROR)
        warning_count = sum(1 for p in problems if p.severity is Severity.WARNING)
        info_count = sum(1 for p in problems if p.severity is Severity.INFO)
        is_valid = error_count == 0

        if not is_valid:
            summary = (
                f"Validation failed with {error_count} error(s), "
                f"{warning_count} warning(s), and {info_count} info message(s)"
            )
        elif warning_count or info_count:
            summary = (
                f"Validation passed with {warning_count} warning(s) "
                f"and {info_count} info message(s)"
            )
        else:
            summary = "Validation passed successfully"

        return cls(is_valid, problems, error_count, warning_count, info_count, summary)
