"""
ConfigMap construct.
"""

import re
from collections.abc import Mapping
from typing import Any

from konverge.core.construct import Construct
from konverge.core.metadata import ObjectMeta
from konverge.core.resource import KubernetesResource
from konverge.core.types import Manifest, StringMap
from konverge.exceptions import ConstructConfigurationError

CONFIGMAP_KEY_REGEX = re.compile(r"^[a-zA-Z0-9._-]+$")
MAX_CONFIGMAP_SIZE = 1024 * 1024


class ConfigMap(KubernetesResource):
    """Configuration data for pods to consume."""

    api_version = "v1"
    kind = "ConfigMap"

    def __init__(
        self,
        scope: Construct,
        id: str,
        data: Mapping[str, str] | None = None,
        binary_data: Mapping[str, str] | None = None,
        immutable: bool = False,
        metadata: ObjectMeta | Mapping[str, Any] | None = None,
    ):
        """
        Params:
            scope: The owning construct
            id: Identifier, unique among the scope's children
            data: Configuration entries
            binary_data: Base64-encoded binary entries
            immutable: Whether the data may not be updated after creation
            metadata: Explicit metadata
        """
        super().__init__(scope, id, metadata)
        self._data: StringMap = dict(data or {})
        self._binary_data: StringMap = dict(binary_data or {})
        self.immutable = immutable

    @property
    def data(self) -> StringMap:
        return dict(self._data)

    @property
    def binary_data(self) -> StringMap:
        return dict(self._binary_data)

    def add_data(self, key: str, value: str) -> None:
        """
        Add a configuration entry.

        Raises:
            ConstructConfigurationError: If the key is invalid or already
                used by a binary entry
        """
        self._require_valid_key(key)
        if key in self._binary_data:
            raise ConstructConfigurationError(
                self.node.id, f"Key '{key}' already exists in binaryData"
            )
        self._data[key] = value

    def add_data_from_dict(self, data: Mapping[str, str]) -> None:
        for key, value in data.items():
            self.add_data(key, value)

    def add_file(self, key: str, content: str) -> None:
        """Store file content under ``key``."""
        self.add_data(key, content)

    def add_binary_data(self, key: str, value: str) -> None:
        """
        Add a base64-encoded binary entry.

        Raises:
            ConstructConfigurationError: If the key is invalid or already
                used by a data entry
        """
        self._require_valid_key(key)
        if key in self._data:
            raise ConstructConfigurationError(
                self.node.id, f"Key '{key}' already exists in data"
            )
        self._binary_data[key] = value

    def remove_data(self, key: str) -> None:
        self._data.pop(key, None)

    def remove_binary_data(self, key: str) -> None:
        self._binary_data.pop(key, None)

    def has_data(self, key: str) -> bool:
        return key in self._data

    def has_binary_data(self, key: str) -> bool:
        return key in self._binary_data

    def get_data(self, key: str) -> str | None:
        return self._data.get(key)

    def get_binary_data(self, key: str) -> str | None:
        return self._binary_data.get(key)

    def validate(self) -> list[str]:
        errors = super().validate()

        if not self._data and not self._binary_data:
            errors.append("ConfigMap must have at least one data or binaryData entry")

        for key in [*self._data, *self._binary_data]:
            error = key_error(key)
            if error:
                errors.append(error)

        for key in self._data:
            if key in self._binary_data:
                errors.append(f"Key '{key}' exists in both data and binaryData")

        total_size = sum(
            len(value.encode("utf-8"))
            for value in [*self._data.values(), *self._binary_data.values()]
        )
        if total_size > MAX_CONFIGMAP_SIZE:
            errors.append("ConfigMap total size exceeds 1MiB limit")

        return errors

    def to_manifest(self) -> Manifest:
        manifest = self.create_base_manifest()
        if self._data:
            manifest["data"] = dict(self._data)
        if self._binary_data:
            manifest["binaryData"] = dict(self._binary_data)
        if self.immutable:
            manifest["immutable"] = True
        return manifest

    def _require_valid_key(self, key: str) -> None:
        error = key_error(key)
        if error:
            raise ConstructConfigurationError(self.node.id, error)


def key_error(key: str) -> str | None:
    """Why ``key`` is not a valid ConfigMap key, or None if it is."""
    if not key:
        return "ConfigMap key cannot be empty"
    if not CONFIGMAP_KEY_REGEX.fullmatch(key):
        return (
            f"Invalid ConfigMap key '{key}'. Keys must consist of alphanumeric "
            "characters, '-', '_' or '.'"
        )
    if key in (".", ".."):
        return f"ConfigMap key cannot be '{key}'"
    return None
