from konverge.constructs.patterns.database import Database, DatabaseSettings
from konverge.constructs.patterns.microservice import DatabaseConnection, Microservice
from konverge.constructs.patterns.web_service import WebService

__all__ = [
    "Database",
    "DatabaseConnection",
    "DatabaseSettings",
    "Microservice",
    "WebService",
]
