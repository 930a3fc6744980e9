"""
Kubernetes object metadata model.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from konverge.core.types import StringMap


class ObjectMeta(BaseModel):
    """
    Standard object metadata carried by every resource.

    Label and annotation maps stay mutable so application code can adjust
    them between construction and synthesis.
    """

    name: str | None = None
    namespace: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a manifest ``metadata`` mapping, dropping empty values."""
        data: dict[str, Any] = {}
        if self.name:
            data["name"] = self.name
        if self.namespace:
            data["namespace"] = self.namespace
        if self.labels:
            data["labels"] = dict(self.labels)
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        return data

    @classmethod
    def coerce(cls, value: "ObjectMeta | Mapping[str, Any] | None") -> "ObjectMeta":
        """Accept an ObjectMeta, a plain mapping, or None."""
        if value is None:
            return cls()
        if isinstance(value, ObjectMeta):
            return value.model_copy(deep=True)
        return cls.model_validate(dict(value))


def merge_layers(*layers: Mapping[str, str] | None) -> StringMap:
    """
    Merge mapping layers left to right; later layers win on key conflicts.

    Params:
        layers: Mappings ordered from lowest to highest precedence; None
            entries are skipped

    Returns:
        A new merged dictionary
    """
    merged: StringMap = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged
