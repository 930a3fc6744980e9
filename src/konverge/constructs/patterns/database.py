"""
Database pattern: a single-instance database with its configuration and service.
"""

from collections.abc import Iterator, Mapping
from typing import Any

from attrs import frozen

from konverge.constructs.configmap import ConfigMap
from konverge.constructs.deployment import Deployment
from konverge.constructs.service import Service
from konverge.constructs.utils import config_map_key_ref
from konverge.core.construct import Construct
from konverge.core.dependency_tracker import DependencyHintEdge
from konverge.core.metadata import merge_layers
from konverge.core.types import NAME_LABEL, DependencyType, StringMap

COMPONENT_LABEL = "app.kubernetes.io/component"
PART_OF_LABEL = "app.kubernetes.io/part-of"

DATA_PATHS = (
    ("postgres", "/var/lib/postgresql/data"),
    ("mysql", "/var/lib/mysql"),
    ("mongo", "/data/db"),
    ("redis", "/data"),
)
DEFAULT_DATA_PATH = "/var/lib/data"


@frozen
class DatabaseSettings:
    """Name and credentials of the database to create."""

    name: str
    username: str
    password: str


class Database(Construct):
    """
    A database deployment with a ConfigMap and an internal ClusterIP service.

    The ConfigMap always holds ``database-name`` and ``database-user``;
    the container reads them as ``DB_NAME`` and ``DB_USER``.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        image: str,
        port: int,
        database: DatabaseSettings | Mapping[str, str],
        storage: Mapping[str, str] | None = None,
        resources: Mapping[str, Any] | None = None,
        env: Mapping[str, str] | None = None,
        labels: StringMap | None = None,
        config: Mapping[str, str] | None = None,
    ):
        """
        Params:
            scope: The owning construct
            id: Identifier, also used as the app name label
            image: Database image, e.g. ``postgres:13``
            port: Port the database listens on
            database: Database name and credentials
            storage: Persistent storage settings (``size``, ``storage_class``);
                mounts a ``<id>-data`` claim when given
            resources: Container resource requests and limits
            env: Additional environment variables
            labels: Extra labels for every resource
            config: Additional ConfigMap entries
        """
        super().__init__(scope, id)

        if not isinstance(database, DatabaseSettings):
            database = DatabaseSettings(**database)
        self.settings = database

        self._labels = merge_layers(
            {NAME_LABEL: id, COMPONENT_LABEL: "database", PART_OF_LABEL: "data-tier"},
            labels,
        )

        self.config_map = ConfigMap(
            self,
            "config",
            data=merge_layers(
                {"database-name": database.name, "database-user": database.username},
                config,
            ),
            metadata={"labels": self._labels},
        )

        container: dict[str, Any] = {
            "name": "database",
            "image": image,
            "ports": [{"containerPort": port, "protocol": "TCP"}],
            "env": self._environment(env),
        }
        if resources:
            container["resources"] = dict(resources)

        pod_spec: dict[str, Any] = {"containers": [container]}
        if storage is not None:
            container["volumeMounts"] = [{"name": "data", "mountPath": data_path(image)}]
            pod_spec["volumes"] = [
                {"name": "data", "persistentVolumeClaim": {"claimName": f"{id}-data"}}
            ]

        match_labels = {NAME_LABEL: id, COMPONENT_LABEL: "database"}
        self.deployment = Deployment(
            self,
            "deployment",
            selector={"matchLabels": match_labels},
            template={
                "metadata": {"labels": merge_layers(self._labels, match_labels)},
                "spec": pod_spec,
            },
            replicas=1,
            metadata={"labels": self._labels},
        )

        self.service = Service(
            self,
            "service",
            selector=match_labels,
            ports=[
                {"name": "database", "port": port, "targetPort": port, "protocol": "TCP"}
            ],
            service_type="ClusterIP",
            metadata={"labels": self._labels},
        )

    @property
    def labels(self) -> StringMap:
        return dict(self._labels)

    @property
    def port(self) -> int:
        return self.service.ports[0]["port"]

    def get_connection_string(self, service_name: str | None = None) -> str:
        host = service_name or self.service.metadata.name
        settings = self.settings
        return (
            f"postgresql://{settings.username}:{settings.password}"
            f"@{host}:{self.port}/{settings.name}"
        )

    def add_config(self, key: str, value: str) -> None:
        self.config_map.add_data(key, value)

    def dependency_hints(self) -> Iterator[DependencyHintEdge]:
        yield DependencyHintEdge(
            self.deployment,
            self.config_map,
            DependencyType.CONFIGURATION,
            "Database deployment depends on ConfigMap for configuration",
        )
        yield DependencyHintEdge(
            self.service,
            self.deployment,
            DependencyType.RUNTIME_REFERENCE,
            "Database service depends on deployment for pod selection",
        )

    def _environment(self, extra: Mapping[str, str] | None) -> list[dict[str, Any]]:
        settings = self.settings
        env: list[dict[str, Any]] = [
            {"name": "POSTGRES_DB", "value": settings.name},
            {"name": "POSTGRES_USER", "value": settings.username},
            {"name": "POSTGRES_PASSWORD", "value": settings.password},
            {"name": "MYSQL_DATABASE", "value": settings.name},
            {"name": "MYSQL_USER", "value": settings.username},
            {"name": "MYSQL_PASSWORD", "value": settings.password},
            {"name": "MYSQL_ROOT_PASSWORD", "value": settings.password},
        ]
        config_map_name = self.config_map.metadata.name
        env.append(config_map_key_ref("DB_NAME", config_map_name, "database-name"))
        env.append(config_map_key_ref("DB_USER", config_map_name, "database-user"))
        env.extend({"name": name, "value": value} for name, value in (extra or {}).items())
        return env


def data_path(image: str) -> str:
    """Data directory for a database image."""
    for engine, path in DATA_PATHS:
        if engine in image:
            return path
    return DEFAULT_DATA_PATH
