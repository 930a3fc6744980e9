"""
Tests for the composite constructs.

Focus areas:
- Children created by WebService, Database and Microservice
- Environment wiring from ConfigMaps and database settings
- Dependency hints and the synthesis order they produce
"""

import pytest

from konverge.constructs.patterns.database import Database, DatabaseSettings, data_path
from konverge.constructs.patterns.microservice import DatabaseConnection, Microservice
from konverge.constructs.patterns.web_service import WebService
from konverge.constructs.utils import add_config_env, config_map_key_ref, env_var_name
from konverge.core.types import NAME_LABEL, DependencyType

DATABASE = {
    "image": "postgres:13",
    "port": 5432,
    "database": {"name": "shop", "username": "shop", "password": "pw"},
}


def env_names(container):
    return [entry["name"] for entry in container.get("env", [])]


def positions(manifests):
    return {m["metadata"]["name"]: index for index, m in enumerate(manifests)}


class TestEnvVarName:
    """Tests for configuration key to variable name conversion."""

    @pytest.mark.parametrize(
        "key, expected",
        [
            ("logLevel", "CONFIG_LOG_LEVEL"),
            ("database-url", "CONFIG_DATABASE_URL"),
            ("log.level", "CONFIG_LOG_LEVEL"),
            ("API_KEY", "CONFIG_API_KEY"),
            ("port", "CONFIG_PORT"),
        ],
    )
    def test_env_var_name(self, key, expected):
        assert env_var_name("CONFIG", key) == expected

    def test_add_config_env_skips_existing_names(self):
        container = {"env": [{"name": "CONFIG_MODE", "value": "fixed"}]}

        add_config_env(container, "CONFIG", "settings", ["mode", "level", "level"])

        assert container["env"] == [
            {"name": "CONFIG_MODE", "value": "fixed"},
            config_map_key_ref("CONFIG_LEVEL", "settings", "level"),
        ]


class TestWebService:
    """Tests for the WebService pattern."""

    def test_children(self, stack):
        web = WebService(stack, "web", image="nginx:1.25", config={"logLevel": "debug"})
        assert [c.node.id for c in web.node.children] == ["config", "deployment", "service"]

    def test_no_config_map_without_config(self, stack):
        web = WebService(stack, "web", image="nginx:1.25")

        assert web.config_map is None
        assert [c.node.id for c in web.node.children] == ["deployment", "service"]

    def test_container_and_service_ports(self, stack):
        web = WebService(
            stack, "web", image="nginx:1.25", container_port=8080, service_port=80, replicas=2
        )

        assert web.container["ports"] == [{"containerPort": 8080, "protocol": "TCP"}]
        assert web.service.ports == [
            {"name": "http", "port": 80, "targetPort": 8080, "protocol": "TCP"}
        ]
        assert web.deployment.replicas == 2

    def test_selector_matches_pods(self, stack):
        web = WebService(stack, "web", image="nginx:1.25", labels={"team": "core"})

        selector = web.service.selector
        template_labels = web.deployment.spec["template"]["metadata"]["labels"]

        assert selector[NAME_LABEL] == "web"
        assert all(template_labels[key] == value for key, value in selector.items())
        assert template_labels["team"] == "core"

    def test_config_is_exposed_as_env(self, stack):
        web = WebService(
            stack, "web", image="nginx:1.25", env={"MODE": "prod"}, config={"logLevel": "debug"}
        )

        assert web.container["env"] == [
            {"name": "MODE", "value": "prod"},
            config_map_key_ref("CONFIG_LOG_LEVEL", web.config_map.metadata.name, "logLevel"),
        ]

    def test_add_config_creates_config_map(self, stack):
        web = WebService(stack, "web", image="nginx:1.25")

        web.add_config("featureFlag", "on")
        web.add_config("featureFlag", "off")

        assert web.config_map.get_data("featureFlag") == "off"
        assert env_names(web.container) == ["CONFIG_FEATURE_FLAG"]

    def test_add_environment_variable_and_replicas(self, stack):
        web = WebService(stack, "web", image="nginx:1.25")

        web.add_environment_variable("DEBUG", "1")
        web.set_replicas(5)

        assert {"name": "DEBUG", "value": "1"} in web.container["env"]
        assert web.deployment.replicas == 5

    def test_health_check_probes(self, stack):
        web = WebService(
            stack, "web", image="nginx:1.25", container_port=8080, health_check={"path": "/ready"}
        )

        liveness = web.container["livenessProbe"]
        assert liveness["httpGet"] == {"path": "/ready", "port": 8080}
        assert liveness["initialDelaySeconds"] == 30
        assert web.container["readinessProbe"]["periodSeconds"] == 5

    def test_dependency_hints(self, stack):
        web = WebService(stack, "web", image="nginx:1.25", config={"a": "1"})

        hints = list(web.dependency_hints())

        assert [(h.dependent, h.dependency) for h in hints] == [
            (web, web.config_map),
            (web.deployment, web.config_map),
            (web.service, web.deployment),
        ]

    def test_synthesis_order(self, stack, synthesizer):
        web = WebService(stack, "web", image="nginx:1.25", config={"a": "1"})

        order = positions(synthesizer.synthesize(stack))

        assert order[web.config_map.metadata.name] < order[web.deployment.metadata.name]
        assert order[web.deployment.metadata.name] < order[web.service.metadata.name]


class TestDatabase:
    """Tests for the Database pattern."""

    def test_settings_from_mapping(self, stack):
        database = Database(stack, "db", **DATABASE)
        assert database.settings == DatabaseSettings("shop", "shop", "pw")

    def test_config_map_entries(self, stack):
        database = Database(stack, "db", **DATABASE, config={"max-connections": "100"})

        assert database.config_map.data == {
            "database-name": "shop",
            "database-user": "shop",
            "max-connections": "100",
        }

    def test_connection_string(self, stack):
        database = Database(stack, "db", **DATABASE)

        assert database.port == 5432
        assert database.get_connection_string() == (
            f"postgresql://shop:pw@{database.service.metadata.name}:5432/shop"
        )
        assert database.get_connection_string("db-host") == "postgresql://shop:pw@db-host:5432/shop"

    def test_container_environment(self, stack):
        database = Database(stack, "db", **DATABASE, env={"TZ": "UTC"})
        container = database.deployment.containers[0]

        names = env_names(container)
        assert names[:3] == ["POSTGRES_DB", "POSTGRES_USER", "POSTGRES_PASSWORD"]
        assert "DB_NAME" in names
        assert names[-1] == "TZ"

    def test_storage_mounts_claim(self, stack):
        database = Database(stack, "db", **DATABASE, storage={"size": "1Gi"})

        container = database.deployment.containers[0]
        volumes = database.deployment.spec["template"]["spec"]["volumes"]

        assert container["volumeMounts"] == [
            {"name": "data", "mountPath": "/var/lib/postgresql/data"}
        ]
        assert volumes == [{"name": "data", "persistentVolumeClaim": {"claimName": "db-data"}}]

    def test_no_storage_no_volumes(self, stack):
        database = Database(stack, "db", **DATABASE)
        assert "volumes" not in database.deployment.spec["template"]["spec"]

    @pytest.mark.parametrize(
        "image, path",
        [
            ("postgres:13", "/var/lib/postgresql/data"),
            ("mysql:8", "/var/lib/mysql"),
            ("mongo:6", "/data/db"),
            ("redis:7", "/data"),
            ("custom-db:1", "/var/lib/data"),
        ],
    )
    def test_data_path(self, image, path):
        assert data_path(image) == path

    def test_add_config(self, stack):
        database = Database(stack, "db", **DATABASE)
        database.add_config("timeout", "30")
        assert database.config_map.get_data("timeout") == "30"

    def test_synthesis_order(self, stack, synthesizer):
        database = Database(stack, "db", **DATABASE, storage={"size": "1Gi"})

        order = positions(synthesizer.synthesize(stack))

        assert len(order) == 3
        assert order[database.config_map.metadata.name] < order[database.deployment.metadata.name]
        assert order[database.deployment.metadata.name] < order[database.service.metadata.name]


class TestMicroservice:
    """Tests for the Microservice pattern."""

    @pytest.fixture
    def shop(self, stack):
        return Microservice(
            stack,
            "shop",
            web_service={"image": "shop:1.0", "container_port": 8080},
            database=DATABASE,
            shared_config={"featureFlag": "on"},
        )

    def test_children(self, shop):
        assert [c.node.id for c in shop.node.children] == ["shared-config", "database", "web"]

    def test_database_connection(self, shop):
        assert shop.get_database_connection() == DatabaseConnection(
            host=shop.database.service.metadata.name,
            port=5432,
            database="shop",
            username="shop",
        )

    def test_database_env_injected(self, shop):
        env = {entry["name"]: entry.get("value") for entry in shop.web_service.container["env"]}

        assert env["DATABASE_HOST"] == shop.database.service.metadata.name
        assert env["DATABASE_PORT"] == "5432"
        assert env["DATABASE_NAME"] == "shop"
        assert env["DATABASE_USER"] == "shop"
        assert env["DATABASE_PASSWORD"] == "pw"
        assert env["DATABASE_URL"] == shop.database.get_connection_string()

    def test_shared_config_env(self, shop):
        assert config_map_key_ref(
            "SHARED_FEATURE_FLAG", shop.shared_config.metadata.name, "featureFlag"
        ) in shop.web_service.container["env"]

    def test_add_shared_config(self, stack):
        service = Microservice(stack, "api", web_service={"image": "api:1.0"})
        assert service.shared_config is None

        service.add_shared_config("region", "eu-west-1")

        assert service.shared_config.get_data("region") == "eu-west-1"
        assert "SHARED_REGION" in env_names(service.web_service.container)

    def test_without_database(self, stack):
        service = Microservice(stack, "api", web_service={"image": "api:1.0"})

        assert service.database is None
        assert service.get_database_connection() is None
        assert list(service.dependency_hints()) == []

    def test_scale_and_env(self, shop):
        shop.scale(3)
        shop.add_environment_variable("DEBUG", "1")

        assert shop.web_service.deployment.replicas == 3
        assert {"name": "DEBUG", "value": "1"} in shop.web_service.container["env"]

    def test_labels(self, stack):
        service = Microservice(
            stack, "api", web_service={"image": "api:1.0"}, labels={"team": "core"}
        )
        assert service.labels[NAME_LABEL] == "api"
        assert service.web_service.labels["team"] == "core"

    def test_dependency_hints(self, shop):
        hints = {(h.dependent, h.dependency): h.dependency_type for h in shop.dependency_hints()}

        assert hints[(shop.web_service.deployment, shop.database.service)] is DependencyType.NETWORK
        assert (
            hints[(shop.web_service.deployment, shop.shared_config)]
            is DependencyType.CONFIGURATION
        )

    def test_synthesis_order(self, shop, stack, synthesizer):
        """Test the web deployment follows the database service and shared config."""
        manifests = synthesizer.synthesize(stack)
        order = positions(manifests)
        web_deployment = order[shop.web_service.deployment.metadata.name]

        assert len(manifests) == 6
        assert order[shop.database.service.metadata.name] < web_deployment
        assert order[shop.shared_config.metadata.name] < web_deployment
