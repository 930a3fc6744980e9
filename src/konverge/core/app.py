"""
Application root and the cloud assembly produced by synthesizing it.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from konverge.config import DEFAULT_OUTPUT_DIRECTORY, SynthesisConfig
from konverge.core.construct import Construct
from konverge.core.synthesizer import Synthesizer, format_timestamp, utc_now
from konverge.core.types import Manifest
from konverge.exceptions import ManifestError
from konverge.logging_config import configure_logging

if TYPE_CHECKING:
    from konverge.core.stack import Stack

logger = logging.getLogger(__name__)

ASSEMBLY_VERSION = "1.0.0"
ASSEMBLY_MANIFEST_FILE = "assembly-manifest.json"

DNS_SUBDOMAIN_REGEX = re.compile(
    r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*$"
)
METADATA_KEY_REGEX = re.compile(
    r"^([a-z0-9A-Z]([a-z0-9A-Z\-_.]*[a-z0-9A-Z])?/)?[a-z0-9A-Z]([a-z0-9A-Z\-_.]*[a-z0-9A-Z])?$"
)
MAX_METADATA_KEY_LENGTH = 253
MAX_LABEL_VALUE_LENGTH = 63

KNOWN_API_VERSIONS: dict[str, list[str]] = {
    "Pod": ["v1"],
    "Service": ["v1"],
    "ConfigMap": ["v1"],
    "Secret": ["v1"],
    "Namespace": ["v1"],
    "ServiceAccount": ["v1"],
    "PersistentVolume": ["v1"],
    "PersistentVolumeClaim": ["v1"],
    "Deployment": ["apps/v1"],
    "StatefulSet": ["apps/v1"],
    "DaemonSet": ["apps/v1"],
    "ReplicaSet": ["apps/v1"],
    "Job": ["batch/v1"],
    "CronJob": ["batch/v1"],
    "Ingress": ["networking.k8s.io/v1"],
    "Role": ["rbac.authorization.k8s.io/v1"],
    "ClusterRole": ["rbac.authorization.k8s.io/v1"],
    "RoleBinding": ["rbac.authorization.k8s.io/v1"],
    "ClusterRoleBinding": ["rbac.authorization.k8s.io/v1"],
}


class App(Construct):
    """Root construct of a Konverge application."""

    def __init__(self, config: SynthesisConfig | None = None):
        super().__init__(None, "App")
        self.config = config or SynthesisConfig()
        configure_logging(self.config.log_level)
        self._stacks: list["Stack"] = []

    @property
    def stacks(self) -> list["Stack"]:
        return list(self._stacks)

    def add_stack(self, stack: "Stack") -> None:
        if stack not in self._stacks:
            self._stacks.append(stack)

    def synth(
        self, outdir: str | Path | None = None, synthesizer: Synthesizer | None = None
    ) -> "CloudAssembly":
        """
        Synthesize every stack into a cloud assembly.

        Params:
            outdir: Output directory, defaults to the configured one
            synthesizer: Synthesizer shared by all stacks

        Returns:
            CloudAssembly holding each stack's ordered manifests
        """
        synthesizer = synthesizer or Synthesizer(self.config)
        assembly = CloudAssembly(outdir or self.config.output_directory)
        for stack in self._stacks:
            assembly.add_stack_manifests(stack.stack_name, stack.synthesize(synthesizer))
        return assembly


@dataclass
class StackManifest:
    """The manifests produced for a single stack."""

    stack_name: str
    manifests: list[Manifest] = field(default_factory=list)


class CloudAssembly:
    """Output of a synthesis: manifests per stack, writable to a directory."""

    def __init__(self, directory: str | Path = DEFAULT_OUTPUT_DIRECTORY):
        self._directory = Path(directory)
        self._stack_manifests: dict[str, StackManifest] = {}

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def stacks(self) -> list[StackManifest]:
        return list(self._stack_manifests.values())

    @property
    def resource_count(self) -> int:
        return sum(len(stack.manifests) for stack in self._stack_manifests.values())

    def add_stack_manifests(self, stack_name: str, manifests: list[Manifest]) -> None:
        """Store a stack's manifests in presentation order."""
        self._stack_manifests[stack_name] = StackManifest(
            stack_name, Synthesizer.order_resources(manifests)
        )

    def get_stack_manifests(self, stack_name: str) -> StackManifest | None:
        return self._stack_manifests.get(stack_name)

    def get_all_manifests(self) -> list[Manifest]:
        return [
            manifest
            for stack in self._stack_manifests.values()
            for manifest in stack.manifests
        ]

    def write_to_directory(self) -> list[Path]:
        """
        Write one multi-document YAML file per stack plus an assembly manifest.

        Returns:
            Paths of the files written

        Raises:
            ManifestError: If a manifest is not fit to be written
        """
        self._directory.mkdir(parents=True, exist_ok=True)
        written = []

        for stack in self._stack_manifests.values():
            stack_file = self._directory / f"{stack.stack_name}.yaml"
            stack_file.write_text(render_yaml(stack.manifests), encoding="utf-8")
            written.append(stack_file)

        assembly_manifest = {
            "version": ASSEMBLY_VERSION,
            "stacks": [
                {
                    "name": stack.stack_name,
                    "file": f"{stack.stack_name}.yaml",
                    "resourceCount": len(stack.manifests),
                }
                for stack in self._stack_manifests.values()
            ],
            "totalResources": self.resource_count,
            "generatedAt": format_timestamp(utc_now()),
        }
        manifest_file = self._directory / ASSEMBLY_MANIFEST_FILE
        manifest_file.write_text(json.dumps(assembly_manifest, indent=2), encoding="utf-8")
        written.append(manifest_file)

        logger.info("Wrote %d files to %s", len(written), self._directory)
        return written


def render_yaml(manifests: list[Manifest]) -> str:
    """
    Render manifests as a multi-document YAML string.

    Params:
        manifests: Manifests to render, in output order

    Returns:
        Documents separated by ``---``; empty string for no manifests

    Raises:
        ManifestError: If a manifest fails the pre-write checks
    """
    if not manifests:
        return ""

    for manifest in manifests:
        check_manifest(manifest)

    documents = [
        yaml.safe_dump(
            clean_manifest(manifest),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            width=float("inf"),
        )
        for manifest in manifests
    ]
    return "---\n".join(documents).strip()


def clean_manifest(value: Any) -> Any:
    """Recursively drop None values, empty mappings and empty lists."""
    if isinstance(value, dict):
        cleaned = {}
        for key, item in value.items():
            item = clean_manifest(item)
            if item is None or item == {} or item == []:
                continue
            cleaned[key] = item
        return cleaned
    if isinstance(value, list):
        return [clean_manifest(item) for item in value if item is not None]
    return value


def check_manifest(manifest: Manifest) -> None:
    """
    Pre-write structural and format checks for a single manifest.

    Raises:
        ManifestError: On the first failed check
    """
    for required in ("apiVersion", "kind", "metadata"):
        if not manifest.get(required):
            raise ManifestError(
                f"Manifest is missing required field '{required}'", manifest
            )

    metadata = manifest["metadata"]
    name = metadata.get("name")
    if not name:
        raise ManifestError("Manifest metadata is missing required field 'name'", manifest)
    if not DNS_SUBDOMAIN_REGEX.fullmatch(name):
        raise ManifestError(
            f"Invalid resource name '{name}'. Names must be valid DNS-1123 subdomains.",
            manifest,
        )

    namespace = metadata.get("namespace")
    if namespace and not DNS_SUBDOMAIN_REGEX.fullmatch(namespace):
        raise ManifestError(
            f"Invalid namespace '{namespace}'. Namespaces must be valid DNS-1123 subdomains.",
            manifest,
        )

    for field_name in ("labels", "annotations"):
        for key, value in (metadata.get(field_name) or {}).items():
            if not METADATA_KEY_REGEX.fullmatch(key):
                raise ManifestError(
                    f"Invalid {field_name} key '{key}'. Keys must be valid label keys.",
                    manifest,
                )
            if len(key) > MAX_METADATA_KEY_LENGTH:
                raise ManifestError(
                    f"{field_name} key '{key}' is too long. "
                    f"Maximum length is {MAX_METADATA_KEY_LENGTH} characters.",
                    manifest,
                )
            # Annotation values may be long; only label values are bounded
            if field_name == "labels" and len(str(value)) > MAX_LABEL_VALUE_LENGTH:
                raise ManifestError(
                    f"{field_name} value for key '{key}' is too long. "
                    f"Maximum length is {MAX_LABEL_VALUE_LENGTH} characters.",
                    manifest,
                )

    kind = manifest["kind"]
    valid_versions = KNOWN_API_VERSIONS.get(kind)
    if valid_versions and manifest["apiVersion"] not in valid_versions:
        raise ManifestError(
            f"Invalid apiVersion '{manifest['apiVersion']}' for kind '{kind}'. "
            f"Valid versions: {', '.join(valid_versions)}",
            manifest,
        )
