"""
Service construct.
"""

import copy
import re
from collections.abc import Iterable, Mapping
from typing import Any

from konverge.core.construct import Construct
from konverge.core.metadata import ObjectMeta
from konverge.core.resource import KubernetesResource
from konverge.core.types import Manifest, StringMap
from konverge.exceptions import ConstructConfigurationError

ServicePort = dict[str, Any]

SERVICE_TYPES = ("ClusterIP", "NodePort", "LoadBalancer", "ExternalName")
PROTOCOLS = ("TCP", "UDP", "SCTP")
MIN_PORT, MAX_PORT = 1, 65535
MIN_NODE_PORT, MAX_NODE_PORT = 30000, 32767
IPV4_REGEX = re.compile(r"^(?:[0-9]{1,3}\.){3}[0-9]{1,3}$")


class Service(KubernetesResource):
    """Exposes a set of pods as a network service."""

    api_version = "v1"
    kind = "Service"

    def __init__(
        self,
        scope: Construct,
        id: str,
        selector: Mapping[str, str] | None = None,
        ports: Iterable[ServicePort] | None = None,
        service_type: str = "ClusterIP",
        cluster_ip: str | None = None,
        external_ips: list[str] | None = None,
        session_affinity: str | None = None,
        load_balancer_ip: str | None = None,
        load_balancer_source_ranges: list[str] | None = None,
        external_name: str | None = None,
        external_traffic_policy: str | None = None,
        publish_not_ready_addresses: bool | None = None,
        metadata: ObjectMeta | Mapping[str, Any] | None = None,
    ):
        super().__init__(scope, id, metadata)
        self._selector: StringMap = dict(selector or {})
        self._ports: list[ServicePort] = [dict(port) for port in ports or []]
        self.service_type = service_type

        optional = {
            "clusterIP": cluster_ip,
            "externalIPs": external_ips,
            "sessionAffinity": session_affinity,
            "loadBalancerIP": load_balancer_ip,
            "loadBalancerSourceRanges": load_balancer_source_ranges,
            "externalName": external_name,
            "externalTrafficPolicy": external_traffic_policy,
            "publishNotReadyAddresses": publish_not_ready_addresses,
        }
        self._options: dict[str, Any] = {k: v for k, v in optional.items() if v is not None}

    @property
    def ports(self) -> list[ServicePort]:
        return [dict(port) for port in self._ports]

    @property
    def selector(self) -> StringMap:
        return dict(self._selector)

    @property
    def spec(self) -> dict[str, Any]:
        spec: dict[str, Any] = {}
        if self._selector:
            spec["selector"] = dict(self._selector)
        if self._ports:
            spec["ports"] = copy.deepcopy(self._ports)
        spec["type"] = self.service_type
        spec.update(copy.deepcopy(self._options))
        return spec

    def add_port(self, port: ServicePort) -> None:
        """
        Raises:
            ConstructConfigurationError: If the port name or number is taken
        """
        name = port.get("name")
        if name and any(existing.get("name") == name for existing in self._ports):
            raise ConstructConfigurationError(
                self.node.id, f"Port with name '{name}' already exists"
            )
        if any(existing.get("port") == port.get("port") for existing in self._ports):
            raise ConstructConfigurationError(
                self.node.id, f"Port {port.get('port')} already exists"
            )
        self._ports.append(dict(port))

    def set_selector(self, selector: Mapping[str, str]) -> None:
        self._selector = dict(selector)

    def set_cluster_ip(self, cluster_ip: str) -> None:
        self._options["clusterIP"] = cluster_ip

    def set_external_name(self, external_name: str) -> None:
        self._options["externalName"] = external_name

    def validate(self) -> list[str]:
        errors = super().validate()
        external = self.service_type == "ExternalName"

        if self.service_type not in SERVICE_TYPES:
            errors.append(
                f"Invalid service type: {self.service_type}. "
                f"Must be one of {', '.join(SERVICE_TYPES)}"
            )

        if external:
            if not self._options.get("externalName"):
                errors.append("ExternalName service must have externalName specified")
            if self._selector or self._ports:
                errors.append("ExternalName service must not define a selector or ports")
        else:
            if not self._selector:
                errors.append("Service must have a selector (except for ExternalName type)")
            if not self._ports:
                errors.append(
                    "Service must have at least one port (except for ExternalName type)"
                )

        for port in self._ports:
            number = port.get("port")
            if not isinstance(number, int) or not MIN_PORT <= number <= MAX_PORT:
                errors.append(
                    f"Invalid port number: {number}. Must be between {MIN_PORT} and {MAX_PORT}"
                )
            node_port = port.get("nodePort")
            if node_port is not None and not MIN_NODE_PORT <= node_port <= MAX_NODE_PORT:
                errors.append(
                    f"Invalid nodePort: {node_port}. "
                    f"Must be between {MIN_NODE_PORT} and {MAX_NODE_PORT}"
                )
            protocol = port.get("protocol")
            if protocol and protocol not in PROTOCOLS:
                errors.append(f"Invalid protocol: {protocol}. Must be TCP, UDP, or SCTP")

        load_balancer_ip = self._options.get("loadBalancerIP")
        if (
            self.service_type == "LoadBalancer"
            and load_balancer_ip
            and not IPV4_REGEX.fullmatch(load_balancer_ip)
        ):
            errors.append(f"Invalid loadBalancerIP format: {load_balancer_ip}")

        return errors

    def to_manifest(self) -> Manifest:
        manifest = self.create_base_manifest()
        manifest["spec"] = self.spec
        return manifest
