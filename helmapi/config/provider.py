"""Configuration provider following Black Box Design principles."""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    """Process-wide helm settings, built once at startup and shared read-only."""
    in_cluster: bool
    kubeconfig: str
    driver: Optional[str]
    registry_url: Optional[str]
    helm_bin: str
    default_namespace: str
    command_timeout: int


@dataclass(frozen=True)
class APIConfig:
    """API configuration."""
    port: int
    host: str
    debug: bool
    log_level: str


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_engine_settings(self) -> EngineSettings:
        """Get helm engine settings."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...


def default_kubeconfig_path() -> str:
    """
    Resolve the kubeconfig path.

    KUBECONFIG wins; otherwise ~/.kube/config. If the home directory cannot
    be determined the path is left empty and the failure surfaces on the
    first engine call instead.
    """
    kubeconfig = os.getenv("KUBECONFIG", "")
    if kubeconfig:
        return kubeconfig

    try:
        home = Path.home()
    except RuntimeError as e:
        logger.warning(f"Failed to get user home directory: {e}")
        return ""

    return str(home / ".kube" / "config")


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_engine_settings(self) -> EngineSettings:
        """Get helm engine settings from environment variables."""
        return EngineSettings(
            in_cluster=os.getenv("IN_CLUSTER", "false").lower() == "true",
            kubeconfig=default_kubeconfig_path(),
            driver=os.getenv("HELM_DRIVER") or None,
            registry_url=os.getenv("HELM_REGISTRY_URL") or None,
            helm_bin=os.getenv("HELM_BIN", "helm"),
            default_namespace=os.getenv("HELM_NAMESPACE", "default"),
            command_timeout=int(os.getenv("HELM_COMMAND_TIMEOUT", "300")),
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=int(os.getenv("API_PORT", "8080")),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
