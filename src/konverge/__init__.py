"""
Konverge - Kubernetes manifests from a tree of typed constructs

Konverge builds an in-memory construct tree, orders its resources by
dependency, and synthesizes validated Kubernetes manifests.
"""

from importlib.metadata import version

from konverge.config import SynthesisConfig
from konverge.core import App, Construct, KubernetesResource, Stack, Synthesizer

__version__ = version("konverge")

__all__ = [
    "__version__",
    "App",
    "Construct",
    "KubernetesResource",
    "Stack",
    "Synthesizer",
    "SynthesisConfig",
]
