"""
Engine Module - Black Box Interface

Purpose: Drive the external helm client
Interface: configure_engine(), run_helm(), error taxonomy
Hidden: Command line construction, subprocess lifecycle, kubeconfig validation

The engine itself (chart rendering, cluster apply, release storage) is
helm; this module only knows how to start it and read its answers.
"""

from .config import EngineConfig, configure_engine
from .errors import (
    ChartResolutionError,
    ConfigurationError,
    EngineError,
    HelmApiError,
    NotFoundError,
    RepositoryError,
    ValidationError,
    clean_stderr,
    is_not_found,
)
from .runner import EngineResult, run_helm

__all__ = [
    "EngineConfig",
    "EngineResult",
    "configure_engine",
    "run_helm",
    "HelmApiError",
    "ValidationError",
    "ChartResolutionError",
    "NotFoundError",
    "ConfigurationError",
    "EngineError",
    "RepositoryError",
    "clean_stderr",
    "is_not_found",
]
