"""
Concrete Kubernetes resources and composite patterns.
"""

from konverge.constructs.configmap import ConfigMap
from konverge.constructs.deployment import Deployment
from konverge.constructs.service import Service
from konverge.constructs.patterns import Database, DatabaseSettings, Microservice, WebService

__all__ = [
    "ConfigMap",
    "Database",
    "DatabaseSettings",
    "Deployment",
    "Microservice",
    "Service",
    "WebService",
]
