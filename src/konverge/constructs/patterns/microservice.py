"""
Microservice pattern: a web service wired to an optional database and shared configuration.
"""

from collections.abc import Iterator, Mapping
from typing import Any

from attrs import frozen

from konverge.constructs.configmap import ConfigMap
from konverge.constructs.patterns.database import Database
from konverge.constructs.patterns.web_service import WebService
from konverge.constructs.utils import add_config_env
from konverge.core.construct import Construct
from konverge.core.dependency_tracker import DependencyHintEdge
from konverge.core.metadata import merge_layers
from konverge.core.types import NAME_LABEL, DependencyType, StringMap

COMPONENT_LABEL = "app.kubernetes.io/component"
PART_OF_LABEL = "app.kubernetes.io/part-of"
SHARED_ENV_PREFIX = "SHARED"


@frozen
class DatabaseConnection:
    host: str
    port: int
    database: str
    username: str


class Microservice(Construct):
    """
    A web service plus its backing pieces.

    When a database is configured, its connection details are injected
    into the web container as ``DATABASE_*`` variables. Shared
    configuration lives in a ``shared-config`` ConfigMap and is exposed as
    ``SHARED_<KEY>`` variables.
    """

    def __init__(
        self,
        scope: Construct,
        id: str,
        web_service: Mapping[str, Any],
        database: Mapping[str, Any] | None = None,
        shared_config: Mapping[str, str] | None = None,
        labels: StringMap | None = None,
    ):
        """
        Params:
            scope: The owning construct
            id: Identifier, also used as the app name label
            web_service: Keyword arguments for the WebService
            database: Keyword arguments for the Database, if one is wanted
            shared_config: Entries for the shared ConfigMap
            labels: Extra labels for every resource
        """
        super().__init__(scope, id)

        self._labels = merge_layers(
            {NAME_LABEL: id, COMPONENT_LABEL: "microservice", PART_OF_LABEL: "application"},
            labels,
        )

        self.shared_config: ConfigMap | None = None
        if shared_config:
            self.shared_config = ConfigMap(
                self, "shared-config", data=shared_config, metadata={"labels": self._labels}
            )

        self.database: Database | None = None
        if database is not None:
            database_kwargs = dict(database)
            database_kwargs["labels"] = merge_layers(self._labels, database.get("labels"))
            self.database = Database(self, "database", **database_kwargs)

        web_kwargs = dict(web_service)
        web_kwargs["env"] = self._web_environment(web_service.get("env"))
        web_kwargs["labels"] = merge_layers(self._labels, web_service.get("labels"))
        self.web_service = WebService(self, "web", **web_kwargs)

        self._sync_shared_env()

    @property
    def labels(self) -> StringMap:
        return dict(self._labels)

    def get_database_connection(self) -> DatabaseConnection | None:
        if self.database is None:
            return None
        return DatabaseConnection(
            host=self.database.service.metadata.name,
            port=self.database.port,
            database=self.database.settings.name,
            username=self.database.settings.username,
        )

    def add_shared_config(self, key: str, value: str) -> None:
        """Add a shared entry, creating the shared ConfigMap on first use."""
        if self.shared_config is None:
            self.shared_config = ConfigMap(
                self, "shared-config", metadata={"labels": self._labels}
            )
        self.shared_config.add_data(key, value)
        self._sync_shared_env()

    def scale(self, replicas: int) -> None:
        self.web_service.set_replicas(replicas)

    def add_environment_variable(self, name: str, value: str) -> None:
        self.web_service.add_environment_variable(name, value)

    def dependency_hints(self) -> Iterator[DependencyHintEdge]:
        if self.database is not None:
            yield DependencyHintEdge(
                self.web_service,
                self.database,
                DependencyType.NETWORK,
                "WebService depends on Database for data access",
            )
            yield DependencyHintEdge(
                self.web_service.deployment,
                self.database.service,
                DependencyType.NETWORK,
                "WebService deployment depends on Database service for connectivity",
            )
        if self.shared_config is not None:
            yield DependencyHintEdge(
                self.web_service,
                self.shared_config,
                DependencyType.CONFIGURATION,
                "WebService depends on shared configuration",
            )
            yield DependencyHintEdge(
                self.web_service.deployment,
                self.shared_config,
                DependencyType.CONFIGURATION,
                "WebService deployment depends on shared ConfigMap",
            )

    def _web_environment(self, env: Mapping[str, str] | None) -> dict[str, str]:
        environment = dict(env or {})
        connection = self.get_database_connection()
        if connection is not None:
            environment.update(
                {
                    "DATABASE_HOST": connection.host,
                    "DATABASE_PORT": str(connection.port),
                    "DATABASE_NAME": connection.database,
                    "DATABASE_USER": connection.username,
                    "DATABASE_PASSWORD": self.database.settings.password,
                    "DATABASE_URL": self.database.get_connection_string(),
                }
            )
        return environment

    def _sync_shared_env(self) -> None:
        if self.shared_config is None:
            return
        add_config_env(
            self.web_service.container,
            SHARED_ENV_PREFIX,
            self.shared_config.metadata.name,
            self.shared_config.data,
        )
