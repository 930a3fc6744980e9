"""
WebService pattern: a Deployment and Service with an optional ConfigMap.
"""

from collections.abc import Iterator, Mapping
from typing import Any

from konverge.constructs.configmap import ConfigMap
from konverge.constructs.deployment import Deployment
from konverge.constructs.service import Service
from konverge.constructs.utils import add_config_env
from konverge.core.construct import Construct
from konverge.core.dependency_tracker import DependencyHintEdge
from konverge.core.metadata import merge_layers
from konverge.core.types import NAME_LABEL, DependencyType, StringMap

COMPONENT_LABEL = "app.kubernetes.io/component"
CONFIG_ENV_PREFIX = "CONFIG"


class WebService(Construct):
    """
    A complete web service.

    Creates a Deployment running one ``web`` container, a Service in front
    of it and, when configuration is given, a ConfigMap whose keys are
    exposed to the container as ``CONFIG_<KEY>`` environment variables.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        image: str,
        container_port: int = 80,
        service_port: int = 80,
        replicas: int = 1,
        env: Mapping[str, str] | None = None,
        config: Mapping[str, str] | None = None,
        service_type: str = "ClusterIP",
        labels: StringMap | None = None,
        resources: Mapping[str, Any] | None = None,
        health_check: Mapping[str, Any] | None = None,
    ):
        """
        Params:
            scope: The owning construct
            id: Identifier, also used as the app name label
            image: Container image
            container_port: Port the container listens on
            service_port: Port the service exposes
            replicas: Number of pods
            env: Plain environment variables
            config: Entries for the ConfigMap; no ConfigMap when empty
            service_type: Kubernetes service type
            labels: Extra labels for every resource
            resources: Container resource requests and limits
            health_check: Probe settings: ``path``, ``port``,
                ``initial_delay_seconds``, ``period_seconds``
        """
        super().__init__(scope, id)

        self._labels = merge_layers(
            {NAME_LABEL: id, COMPONENT_LABEL: "web-service"}, labels
        )
        self.config_map: ConfigMap | None = None
        if config:
            self.config_map = ConfigMap(
                self, "config", data=config, metadata={"labels": self._labels}
            )

        container: dict[str, Any] = {
            "name": "web",
            "image": image,
            "ports": [{"containerPort": container_port, "protocol": "TCP"}],
            "env": [{"name": name, "value": value} for name, value in (env or {}).items()],
        }
        if resources:
            container["resources"] = dict(resources)
        if health_check is not None:
            container.update(_probes(health_check, container_port))

        match_labels = {NAME_LABEL: id, COMPONENT_LABEL: "web-service"}
        self.deployment = Deployment(
            self,
            "deployment",
            selector={"matchLabels": match_labels},
            template={
                "metadata": {"labels": merge_layers(self._labels, match_labels)},
                "spec": {"containers": [container]},
            },
            replicas=replicas,
            metadata={"labels": self._labels},
        )

        self.service = Service(
            self,
            "service",
            selector=match_labels,
            ports=[
                {
                    "name": "http",
                    "port": service_port,
                    "targetPort": container_port,
                    "protocol": "TCP",
                }
            ],
            service_type=service_type,
            metadata={"labels": self._labels},
        )

        self._sync_config_env()

    @property
    def labels(self) -> StringMap:
        return dict(self._labels)

    @property
    def container(self) -> dict[str, Any]:
        return self.deployment.containers[0]

    def set_replicas(self, replicas: int) -> None:
        self.deployment.set_replicas(replicas)

    def add_environment_variable(self, name: str, value: str) -> None:
        self.container.setdefault("env", []).append({"name": name, "value": value})

    def add_config(self, key: str, value: str) -> None:
        """Add a configuration entry, creating the ConfigMap on first use."""
        if self.config_map is None:
            self.config_map = ConfigMap(self, "config", metadata={"labels": self._labels})
        self.config_map.add_data(key, value)
        self._sync_config_env()

    def dependency_hints(self) -> Iterator[DependencyHintEdge]:
        if self.config_map is not None:
            yield DependencyHintEdge(
                self,
                self.config_map,
                DependencyType.CONFIGURATION,
                "WebService depends on its ConfigMap for configuration",
            )
            yield DependencyHintEdge(
                self.deployment,
                self.config_map,
                DependencyType.CONFIGURATION,
                "Deployment depends on ConfigMap for environment variables",
            )
        yield DependencyHintEdge(
            self.service,
            self.deployment,
            DependencyType.RUNTIME_REFERENCE,
            "Service depends on Deployment for pod selection",
        )

    def _sync_config_env(self) -> None:
        if self.config_map is None:
            return
        add_config_env(
            self.container,
            CONFIG_ENV_PREFIX,
            self.config_map.metadata.name,
            self.config_map.data,
        )


def _probes(health_check: Mapping[str, Any], container_port: int) -> dict[str, Any]:
    http_get = {
        "path": health_check.get("path", "/health"),
        "port": health_check.get("port", container_port),
    }
    return {
        "livenessProbe": {
            "httpGet": dict(http_get),
            "initialDelaySeconds": health_check.get("initial_delay_seconds", 30),
            "periodSeconds": health_check.get("period_seconds", 10),
        },
        "readinessProbe": {
            "httpGet": dict(http_get),
            "initialDelaySeconds": 5,
            "periodSeconds": 5,
        },
    }
