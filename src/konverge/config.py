"""
Synthesis configuration for Konverge.

Settings can be built directly, from a dict, or from a YAML file; in the
latter two cases only the given keys override the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import fields as dataclass_fields
from pathlib import Path
from typing import Any

DEFAULT_OUTPUT_DIRECTORY = "./cdk.out"


@dataclass
class SynthesisConfig:
    """Settings for a synthesis run.

    Examples:
        # All defaults
        config = SynthesisConfig()

        # Partial override from dict
        config = SynthesisConfig.from_dict({"validate_schemas": False})

        # From YAML file
        config = SynthesisConfig.from_yaml("konverge.yaml")
    """

    # Check every finished document against the registered schemas
    validate_schemas: bool = True
    output_directory: str = DEFAULT_OUTPUT_DIRECTORY
    log_level: str | None = None

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> SynthesisConfig:
        """Create from dict, only overriding specified values.

        Params:
            config: Dictionary with partial overrides; keys that are not
                fields are ignored

        Returns:
            SynthesisConfig with the given overrides
        """
        valid_fields = {f.name for f in dataclass_fields(cls)}
        filtered = {k: v for k, v in config.items() if k in valid_fields}
        return cls(**filtered)

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> SynthesisConfig:
        """Create from YAML file with partial overrides.

        Example YAML:
            validate_schemas: false
            output_directory: build/manifests
        """
        import yaml

        path = Path(yaml_path)
        with path.open() as f:
            config = yaml.safe_load(f) or {}

        return cls.from_dict(config)
