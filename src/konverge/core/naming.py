"""
Naming strategy for Kubernetes resources.

Derives deterministic, DNS-compliant resource names from construct paths,
resolves collisions between siblings, generates the automatic labels and
annotations every resource carries, and validates names and labels
against the Kubernetes grammars.
"""

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from attrs import field, frozen

from konverge.core.construct import PATH_SEPARATOR, Construct
from konverge.core.types import (
    CONSTRUCT_ID_LABEL,
    CONSTRUCT_PATH_ANNOTATION,
    MANAGED_BY,
    MANAGED_BY_LABEL,
    NAME_LABEL,
    STACK_NAME_KEY,
    STACK_NAMESPACE_ANNOTATION,
    StringMap,
)
from konverge.exceptions import NameCollisionUnresolvedError

if TYPE_CHECKING:
    from konverge.core.stack import Stack

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 63
DEFAULT_SEPARATOR = "-"
HASH_LENGTH = 5
MAX_COLLISION_ATTEMPTS = 1000
MAX_LABEL_VALUE_LENGTH = 63
MAX_LABEL_PREFIX_LENGTH = 253

DNS_NAME_REGEX = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
LABEL_KEY_REGEX = re.compile(
    r"^([a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*/)?"
    r"[a-z0-9]([-a-z0-9]*[a-z0-9])?$"
)
LABEL_VALUE_REGEX = re.compile(r"^[a-z0-9A-Z]([-a-z0-9A-Z_.]*[a-z0-9A-Z])?$")

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass
class NamingOptions:
    """Options for resource name generation."""

    max_length: int = DEFAULT_MAX_LENGTH
    include_hash: bool = True
    separator: str = DEFAULT_SEPARATOR
    preserve_case: bool = False


@frozen
class NameValidationResult:
    """Outcome of validating a name, label key or label value."""

    is_valid: bool
    errors: list[str] = field(factory=list)
    suggested_name: str | None = None


def generate_resource_name(
    construct: Construct, options: NamingOptions | None = None
) -> str:
    """
    Generate a resource name from the construct's path.

    The result is a pure function of the path and the options. Names longer
    than ``max_length`` are truncated and, when hashing is enabled, suffixed
    with a short hash of the full path so distinct long paths stay distinct.

    Params:
        construct: The construct to name
        options: Naming options, defaults to ``NamingOptions()``

    Returns:
        A DNS-label compliant name
    """
    options = options or NamingOptions()
    path = construct.node.path

    name = options.separator.join(path.split(PATH_SEPARATOR))
    if not options.preserve_case:
        name = name.lower()
    name = sanitize_name(name, options.separator)

    if len(name) > options.max_length:
        if options.include_hash:
            digest = short_hash(path)
            keep = options.max_length - len(digest) - 1
            name = name[:keep] + options.separator + digest
        else:
            name = name[: options.max_length]

    return ensure_valid_dns_name(name)


def sanitize_name(name: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """
    Rewrite an arbitrary string into the DNS-label alphabet.

    Params:
        name: Raw name
        separator: Replacement for every disallowed character

    Returns:
        Lowercase name with collapsed, stripped separators, or ``resource``
        when nothing survives
    """
    sanitized = re.sub(r"[^a-z0-9-]", separator, name.lower())
    if separator:
        escaped = re.escape(separator)
        sanitized = re.sub(f"(?:{escaped})+", separator, sanitized)
        sanitized = re.sub(f"^(?:{escaped})+|(?:{escaped})+$", "", sanitized)
    return sanitized or "resource"


def ensure_valid_dns_name(name: str) -> str:
    if DNS_NAME_REGEX.fullmatch(name):
        return name

    sanitized = sanitize_name(name)
    if not DNS_NAME_REGEX.fullmatch(sanitized):
        sanitized = sanitize_name(f"resource-{sanitized}")
    return sanitized


def sanitize_label_value(value: str) -> str:
    """Rewrite a string into the label-value alphabet."""
    sanitized = re.sub(r"[^a-zA-Z0-9\-_.]", "-", value)
    sanitized = re.sub(r"-+", "-", sanitized)
    sanitized = sanitized.strip("-")
    return sanitized or "value"


def short_hash(value: str) -> str:
    """
    Short deterministic hash of a string.

    A 32-bit rolling polynomial (base 31) over the character codes, taken
    as an absolute value and rendered in base 36, truncated to five
    characters.

    Params:
        value: Input string, usually a construct path

    Returns:
        Up to five lowercase base-36 characters
    """
    acc = 0
    for char in value:
        acc = (acc * 31 + ord(char)) & 0xFFFFFFFF
    if acc & 0x80000000:
        acc -= 0x100000000
    return _to_base36(abs(acc))[:HASH_LENGTH]


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def _effective_name(construct: Construct) -> str:
    # Resources already carry their (possibly collision-resolved) name
    metadata = getattr(construct, "metadata", None)
    name = getattr(metadata, "name", None)
    if name:
        return name
    return generate_resource_name(construct)


def detect_name_collision(construct: Construct, proposed_name: str) -> bool:
    """
    Check whether a sibling of ``construct`` already uses ``proposed_name``.

    Params:
        construct: The construct that wants the name
        proposed_name: Candidate resource name

    Returns:
        True if any other child of the same scope resolves to the same name
    """
    scope = construct.node.scope
    if scope is None:
        return False

    for sibling in scope.node.children:
        if sibling is construct:
            continue
        if _effective_name(sibling) == proposed_name:
            return True
    return False


def resolve_name_collision(construct: Construct, base_name: str) -> str:
    """
    Find a free name by appending ``-1``, ``-2``, ... to ``base_name``.

    Params:
        construct: The construct being named
        base_name: The colliding name

    Returns:
        First suffixed candidate without a sibling collision

    Raises:
        NameCollisionUnresolvedError: After MAX_COLLISION_ATTEMPTS candidates
    """
    counter = 1
    candidate = _suffixed(base_name, counter)
    while detect_name_collision(construct, candidate):
        counter += 1
        if counter > MAX_COLLISION_ATTEMPTS:
            raise NameCollisionUnresolvedError(
                construct.node.path, MAX_COLLISION_ATTEMPTS
            )
        candidate = _suffixed(base_name, counter)

    logger.warning(
        "Resolved name collision for %s: %s -> %s",
        construct.node.path,
        base_name,
        candidate,
    )
    return candidate


def _suffixed(base_name: str, counter: int) -> str:
    suffix = f"-{counter}"
    if len(base_name) + len(suffix) > DEFAULT_MAX_LENGTH:
        base_name = base_name[: DEFAULT_MAX_LENGTH - len(suffix)].rstrip("-")
    return f"{base_name}{suffix}"


def generate_unique_resource_name(
    construct: Construct, options: NamingOptions | None = None
) -> str:
    """Generate a resource name and resolve any sibling collision."""
    name = generate_resource_name(construct, options)
    if detect_name_collision(construct, name):
        name = resolve_name_collision(construct, name)
    return name


def find_parent_stack(construct: Construct) -> "Stack | None":
    """Return the nearest enclosing Stack, excluding the construct itself."""
    from konverge.core.stack import Stack

    current = construct.node.scope
    while current is not None:
        if isinstance(current, Stack):
            return current
        current = current.node.scope
    return None


def generate_labels(construct: Construct) -> StringMap:
    """
    Automatic labels for a construct.

    Params:
        construct: The construct to label

    Returns:
        Standard name/managed-by labels, the sanitized construct path, and
        the enclosing stack's name and labels when inside a stack
    """
    labels = {
        NAME_LABEL: construct.node.id,
        MANAGED_BY_LABEL: MANAGED_BY,
    }

    construct_id = sanitize_label_value(construct.node.path)
    if len(construct_id) > MAX_LABEL_VALUE_LENGTH:
        construct_id = construct_id[:MAX_LABEL_VALUE_LENGTH].rstrip("-_.")
    labels[CONSTRUCT_ID_LABEL] = construct_id

    stack = find_parent_stack(construct)
    if stack is not None:
        labels[STACK_NAME_KEY] = stack.stack_name
        labels.update(stack.labels)

    return labels


def generate_annotations(construct: Construct) -> StringMap:
    annotations = {CONSTRUCT_PATH_ANNOTATION: construct.node.path}

    stack = find_parent_stack(construct)
    if stack is not None:
        annotations[STACK_NAME_KEY] = stack.stack_name
        if stack.namespace:
            annotations[STACK_NAMESPACE_ANNOTATION] = stack.namespace

    return annotations


def validate_resource_name(name: str) -> NameValidationResult:
    """
    Validate a resource name or namespace against the DNS-label rules.

    Params:
        name: The name to check

    Returns:
        Result with all violations and a sanitized suggestion when invalid
    """
    if not name:
        return NameValidationResult(False, ["Name cannot be empty"])

    errors = []
    if len(name) > DEFAULT_MAX_LENGTH:
        errors.append(f"Name cannot exceed {DEFAULT_MAX_LENGTH} characters")
    if not DNS_NAME_REGEX.fullmatch(name):
        errors.append(
            "Name must be a valid DNS subdomain (lowercase alphanumeric "
            "characters, hyphens, and periods only)"
        )
    if name.startswith("-") or name.endswith("-"):
        errors.append("Name cannot start or end with a hyphen")
    if ".." in name:
        errors.append("Name cannot contain consecutive periods")

    if errors:
        return NameValidationResult(False, errors, sanitize_name(name))
    return NameValidationResult(True)


def validate_label_key(key: str) -> NameValidationResult:
    if not key:
        return NameValidationResult(False, ["Label key cannot be empty"])

    errors = []
    if len(key) > MAX_LABEL_VALUE_LENGTH:
        parts = key.split("/")
        if len(parts) == 2:
            prefix, name = parts
            if len(prefix) > MAX_LABEL_PREFIX_LENGTH:
                errors.append(
                    f"Label key prefix cannot exceed {MAX_LABEL_PREFIX_LENGTH} characters"
                )
            if len(name) > MAX_LABEL_VALUE_LENGTH:
                errors.append(
                    f"Label key name cannot exceed {MAX_LABEL_VALUE_LENGTH} characters"
                )
        else:
            errors.append(
                f"Label key cannot exceed {MAX_LABEL_VALUE_LENGTH} characters"
            )

    if not LABEL_KEY_REGEX.fullmatch(key):
        errors.append("Label key must be a valid DNS subdomain with optional prefix")

    return NameValidationResult(not errors, errors)


def validate_label_value(value: str) -> NameValidationResult:
    errors = []
    if len(value) > MAX_LABEL_VALUE_LENGTH:
        errors.append(
            f"Label value cannot exceed {MAX_LABEL_VALUE_LENGTH} characters"
        )
    if value and not LABEL_VALUE_REGEX.fullmatch(value):
        errors.append(
            "Label value must contain only alphanumeric characters, hyphens, "
            "underscores, and periods"
        )
    return NameValidationResult(not errors, errors)
