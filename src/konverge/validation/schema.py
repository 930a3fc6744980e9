"""
Structural schema checking for Kubernetes manifests.

Schemas are declarative shapes keyed by apiVersion and kind. A manifest
whose kind has no registered schema passes trivially, so schema coverage
can grow one kind at a time.
"""

import re
from typing import Any

from attrs import field, frozen
from pydantic import BaseModel

from konverge.core.types import Manifest
from konverge.validation.problems import Severity, ValidationProblem

DNS_LABEL_PATTERN = "^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"


class PropertySchema(BaseModel):
    """Shape of a single value, possibly nested."""

    type: str
    required: bool = False
    properties: dict[str, "PropertySchema"] | None = None
    items: "PropertySchema | None" = None
    enum: list[Any] | None = None
    pattern: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    description: str | None = None


class ResourceSchema(BaseModel):
    """Shape of a whole manifest for one apiVersion and kind."""

    api_version: str
    kind: str
    shape: PropertySchema
    required: list[str] = []

    @property
    def key(self) -> str:
        return schema_key(self.api_version, self.kind)


@frozen
class SchemaValidationResult:
    is_valid: bool
    errors: list[ValidationProblem] = field(factory=list)


def schema_key(api_version: str, kind: str) -> str:
    return f"{api_version}/{kind}"


class SchemaRegistry:
    """
    Registry of resource schemas, owned by whoever creates it.

    A new registry is seeded with the built-in ConfigMap, Service and
    Deployment schemas unless ``seed_builtins`` is false.
    """

    def __init__(self, seed_builtins: bool = True):
        self._schemas: dict[str, ResourceSchema] = {}
        if seed_builtins:
            self.register_builtin_schemas()

    def register(self, schema: ResourceSchema | dict[str, Any]) -> None:
        """Add a schema, replacing any existing one for the same apiVersion and kind."""
        if not isinstance(schema, ResourceSchema):
            schema = ResourceSchema.model_validate(schema)
        self._schemas[schema.key] = schema

    def get(self, api_version: str, kind: str) -> ResourceSchema | None:
        return self._schemas.get(schema_key(api_version, kind))

    def all(self) -> dict[str, ResourceSchema]:
        return dict(self._schemas)

    def clear(self) -> None:
        self._schemas.clear()

    def __len__(self) -> int:
        return len(self._schemas)

    def __contains__(self, key: str) -> bool:
        return key in self._schemas

    def register_builtin_schemas(self) -> None:
        for schema in BUILTIN_SCHEMAS:
            self.register(schema)


class SchemaValidator:
    """Checks manifests against the schemas of a SchemaRegistry."""

    def __init__(self, registry: SchemaRegistry | None = None):
        self.registry = registry if registry is not None else SchemaRegistry()

    def validate_manifest(
        self, manifest: Manifest, path: str = "manifest"
    ) -> SchemaValidationResult:
        """
        Check a manifest against the schema registered for its kind.

        Params:
            manifest: The document to check
            path: Prefix for the problem paths

        Returns:
            Result that is valid unless an error-severity problem was found;
            unknown properties are reported as warnings
        """
        schema = self.registry.get(manifest.get("apiVersion", ""), manifest.get("kind", ""))
        if schema is None:
            return SchemaValidationResult(True, [])

        problems: list[ValidationProblem] = []
        missing = frozenset(r for r in schema.required if r not in manifest)
        for required in schema.required:
            if required in missing:
                problems.append(
                    ValidationProblem(
                        f"Missing required property '{required}'",
                        f"{path}.{required}",
                        Severity.ERROR,
                        "MISSING_REQUIRED_PROPERTY",
                    )
                )

        # Keys already reported missing above are not reported again by the shape
        self._check_value(manifest, schema.shape, path, problems, reported=missing)

        is_valid = not any(p.severity is Severity.ERROR for p in problems)
        return SchemaValidationResult(is_valid, problems)

    def _check_value(
        self,
        value: Any,
        schema: PropertySchema,
        path: str,
        problems: list[ValidationProblem],
        reported: frozenset[str] = frozenset(),
    ) -> None:
        if value is None:
            return

        if not _matches_type(value, schema.type):
            problems.append(
                ValidationProblem(
                    f"Expected type '{schema.type}' but got '{_type_name(value)}'",
                    path,
                    Severity.ERROR,
                    "INVALID_TYPE",
                )
            )
            return

        if schema.type == "object":
            self._check_properties(value, schema, path, problems, reported)
        elif schema.type == "array":
            if schema.items is not None:
                for index, item in enumerate(value):
                    self._check_value(item, schema.items, f"{path}[{index}]", problems)
        elif schema.type == "string":
            if schema.pattern and not re.search(schema.pattern, value):
                problems.append(
                    ValidationProblem(
                        f"String '{value}' does not match pattern '{schema.pattern}'",
                        path,
                        Severity.ERROR,
                        "PATTERN_MISMATCH",
                    )
                )
        elif schema.type in ("number", "integer"):
            self._check_number(value, schema, path, problems)

        if schema.enum is not None and value not in schema.enum:
            allowed = ", ".join(str(v) for v in schema.enum)
            problems.append(
                ValidationProblem(
                    f"Value '{value}' is not one of the allowed values: {allowed}",
                    path,
                    Severity.ERROR,
                    "INVALID_ENUM_VALUE",
                )
            )

    def _check_properties(
        self,
        value: dict[str, Any],
        schema: PropertySchema,
        path: str,
        problems: list[ValidationProblem],
        reported: frozenset[str] = frozenset(),
    ) -> None:
        if schema.properties is None:
            return

        for name, property_schema in schema.properties.items():
            property_path = f"{path}.{name}"
            property_value = value.get(name)
            if property_value is None:
                if property_schema.required and name not in reported:
                    problems.append(
                        ValidationProblem(
                            f"Missing required property '{name}'",
                            property_path,
                            Severity.ERROR,
                            "MISSING_REQUIRED_PROPERTY",
                        )
                    )
                continue
            self._check_value(property_value, property_schema, property_path, problems)

        for name in value:
            if name not in schema.properties:
                problems.append(
                    ValidationProblem(
                        f"Unknown property '{name}'",
                        f"{path}.{name}",
                        Severity.WARNING,
                        "UNKNOWN_PROPERTY",
                    )
                )

    def _check_number(
        self,
        value: int | float,
        schema: PropertySchema,
        path: str,
        problems: list[ValidationProblem],
    ) -> None:
        if schema.minimum is not None and value < schema.minimum:
            problems.append(
                ValidationProblem(
                    f"Value {value} is less than minimum {schema.minimum:g}",
                    path,
                    Severity.ERROR,
                    "VALUE_TOO_SMALL",
                )
            )
        if schema.maximum is not None and value > schema.maximum:
            problems.append(
                ValidationProblem(
                    f"Value {value} is greater than maximum {schema.maximum:g}",
                    path,
                    Severity.ERROR,
                    "VALUE_TOO_LARGE",
                )
            )


def _matches_type(value: Any, expected: str) -> bool:
    # bool is an int subclass, so it is excluded from the numeric types
    if expected == "string":
        return isinstance(value, str)
    if expected == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "boolean":
        return isinstance(value, bool)
    if expected == "object":
        return isinstance(value, dict)
    if expected == "array":
        return isinstance(value, list)
    return True


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return type(value).__name__


def _object_metadata_shape() -> dict[str, Any]:
    return {
        "type": "object",
        "required": True,
        "properties": {
            "name": {"type": "string", "required": True, "pattern": DNS_LABEL_PATTERN},
            "namespace": {"type": "string", "pattern": DNS_LABEL_PATTERN},
            "labels": {"type": "object"},
            "annotations": {"type": "object"},
        },
    }


_PROTOCOL = {"type": "string", "enum": ["TCP", "UDP", "SCTP"]}
_PORT_NUMBER = {"type": "integer", "minimum": 1, "maximum": 65535}

BUILTIN_SCHEMAS: list[dict[str, Any]] = [
    {
        "api_version": "v1",
        "kind": "ConfigMap",
        "required": ["apiVersion", "kind", "metadata"],
        "shape": {
            "type": "object",
            "properties": {
                "apiVersion": {"type": "string", "enum": ["v1"]},
                "kind": {"type": "string", "enum": ["ConfigMap"]},
                "metadata": _object_metadata_shape(),
                "data": {"type": "object"},
                "binaryData": {"type": "object"},
                "immutable": {"type": "boolean"},
            },
        },
    },
    {
        "api_version": "v1",
        "kind": "Service",
        "required": ["apiVersion", "kind", "metadata"],
        "shape": {
            "type": "object",
            "properties": {
                "apiVersion": {"type": "string", "enum": ["v1"]},
                "kind": {"type": "string", "enum": ["Service"]},
                "metadata": _object_metadata_shape(),
                "spec": {
                    "type": "object",
                    "properties": {
                        "selector": {"type": "object"},
                        "ports": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "name": {"type": "string"},
                                    "port": {**_PORT_NUMBER, "required": True},
                                    "targetPort": _PORT_NUMBER,
                                    "nodePort": {
                                        "type": "integer",
                                        "minimum": 30000,
                                        "maximum": 32767,
                                    },
                                    "protocol": _PROTOCOL,
                                },
                            },
                        },
                        "type": {
                            "type": "string",
                            "enum": ["ClusterIP", "NodePort", "LoadBalancer", "ExternalName"],
                        },
                        "externalName": {"type": "string"},
                        "loadBalancerIP": {"type": "string"},
                    },
                },
            },
        },
    },
    {
        "api_version": "apps/v1",
        "kind": "Deployment",
        "required": ["apiVersion", "kind", "metadata", "spec"],
        "shape": {
            "type": "object",
            "properties": {
                "apiVersion": {"type": "string", "enum": ["apps/v1"]},
                "kind": {"type": "string", "enum": ["Deployment"]},
                "metadata": _object_metadata_shape(),
                "spec": {
                    "type": "object",
                    "required": True,
                    "properties": {
                        "replicas": {"type": "integer", "minimum": 0},
                        "selector": {
                            "type": "object",
                            "required": True,
                            "properties": {"matchLabels": {"type": "object"}},
                        },
                        "template": {
                            "type": "object",
                            "required": True,
                            "properties": {
                                "metadata": {
                                    "type": "object",
                                    "properties": {"labels": {"type": "object"}},
                                },
                                "spec": {
                                    "type": "object",
                                    "properties": {
                                        "containers": {
                                            "type": "array",
                                            "items": {
                                                "type": "object",
                                                "properties": {
                                                    "name": {"type": "string", "required": True},
                                                    "image": {"type": "string", "required": True},
                                                    "ports": {
                                                        "type": "array",
                                                        "items": {
                                                            "type": "object",
                                                            "properties": {
                                                                "containerPort": _PORT_NUMBER,
                                                                "name": {"type": "string"},
                                                                "protocol": _PROTOCOL,
                                                            },
                                                        },
                                                    },
                                                    "env": {"type": "array"},
                                                    "resources": {"type": "object"},
                                                    "volumeMounts": {"type": "array"},
                                                },
                                            },
                                        },
                                        "volumes": {"type": "array"},
                                    },
                                },
                            },
                        },
                    },
                },
            },
        },
    },
]
