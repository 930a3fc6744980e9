"""
Tests for the Service construct.
"""

import pytest

from konverge.constructs.service import Service
from konverge.exceptions import ConstructConfigurationError

SELECTOR = {"app": "web"}


def make_service(scope, id="svc", ports=None, **kwargs):
    if ports is None:
        ports = [{"name": "http", "port": 80, "targetPort": 8080}]
    return Service(scope, id, selector=kwargs.pop("selector", SELECTOR), ports=ports, **kwargs)


class TestServiceConstruction:
    """Tests for creating and updating services."""

    def test_defaults(self, stack):
        service = make_service(stack)

        assert service.service_type == "ClusterIP"
        assert service.spec == {
            "selector": SELECTOR,
            "ports": [{"name": "http", "port": 80, "targetPort": 8080}],
            "type": "ClusterIP",
        }

    def test_optional_fields_in_spec(self, stack):
        service = make_service(
            stack,
            service_type="LoadBalancer",
            load_balancer_ip="10.0.0.1",
            session_affinity="ClientIP",
        )

        spec = service.spec
        assert spec["loadBalancerIP"] == "10.0.0.1"
        assert spec["sessionAffinity"] == "ClientIP"
        assert "clusterIP" not in spec

    def test_add_port(self, stack):
        service = make_service(stack)
        service.add_port({"name": "https", "port": 443})
        assert [p["port"] for p in service.ports] == [80, 443]

    def test_duplicate_port_name_rejected(self, stack):
        service = make_service(stack)
        with pytest.raises(ConstructConfigurationError):
            service.add_port({"name": "http", "port": 8081})

    def test_duplicate_port_number_rejected(self, stack):
        service = make_service(stack)
        with pytest.raises(ConstructConfigurationError) as exc_info:
            service.add_port({"name": "other", "port": 80})
        assert "Port 80 already exists" in exc_info.value.reason

    def test_setters(self, stack):
        service = make_service(stack)
        service.set_selector({"app": "api"})
        service.set_cluster_ip("None")

        assert service.selector == {"app": "api"}
        assert service.spec["clusterIP"] == "None"

    def test_ports_view_is_a_copy(self, stack):
        service = make_service(stack)
        service.ports[0]["port"] = 1
        assert service.ports[0]["port"] == 80


class TestServiceValidation:
    """Tests for Service.validate."""

    def test_valid(self, stack):
        assert make_service(stack).validate() == []

    def test_selector_and_ports_required(self, stack):
        errors = Service(stack, "svc").validate()

        assert "Service must have a selector (except for ExternalName type)" in errors
        assert "Service must have at least one port (except for ExternalName type)" in errors

    def test_invalid_type(self, stack):
        errors = make_service(stack, service_type="Internal").validate()
        assert any(error.startswith("Invalid service type: Internal") for error in errors)

    def test_external_name_service(self, stack):
        service = Service(stack, "ext", service_type="ExternalName", external_name="db.example.com")

        assert service.validate() == []
        assert service.spec == {"type": "ExternalName", "externalName": "db.example.com"}

    def test_external_name_required(self, stack):
        service = Service(stack, "ext", service_type="ExternalName")
        assert "ExternalName service must have externalName specified" in service.validate()

    def test_external_name_rejects_selector_and_ports(self, stack):
        service = make_service(stack, service_type="ExternalName")
        service.set_external_name("db.example.com")

        assert "ExternalName service must not define a selector or ports" in service.validate()

    @pytest.mark.parametrize("port", [0, 70000, "80"])
    def test_invalid_port_number(self, stack, port):
        errors = make_service(stack, ports=[{"port": port}]).validate()
        assert any(error.startswith("Invalid port number") for error in errors)

    def test_invalid_node_port(self, stack):
        errors = make_service(
            stack, ports=[{"port": 80, "nodePort": 80}], service_type="NodePort"
        ).validate()
        assert "Invalid nodePort: 80. Must be between 30000 and 32767" in errors

    def test_invalid_protocol(self, stack):
        errors = make_service(stack, ports=[{"port": 80, "protocol": "HTTP"}]).validate()
        assert "Invalid protocol: HTTP. Must be TCP, UDP, or SCTP" in errors

    def test_invalid_load_balancer_ip(self, stack):
        errors = make_service(
            stack, service_type="LoadBalancer", load_balancer_ip="not-an-ip"
        ).validate()
        assert "Invalid loadBalancerIP format: not-an-ip" in errors


class TestServiceManifest:
    """Tests for Service.to_manifest."""

    def test_manifest(self, stack):
        manifest = make_service(stack).to_manifest()

        assert manifest["apiVersion"] == "v1"
        assert manifest["kind"] == "Service"
        assert manifest["metadata"]["name"] == "app-test-stack-svc"
        assert manifest["spec"]["ports"][0]["targetPort"] == 8080
