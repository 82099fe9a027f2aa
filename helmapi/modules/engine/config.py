import logging
import os
import shutil
from dataclasses import dataclass
from typing import Dict, List, Optional

from kubernetes import config as k8s_config
from kubernetes.client import Configuration

from helmapi.config.provider import EngineSettings

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    """
    Connection configuration for one engine invocation.

    Built per request and scoped to a single namespace; never shared
    between requests.
    """

    helm_bin: str
    namespace: Optional[str]
    kubeconfig: Optional[str]
    driver: Optional[str] = None
    in_cluster: bool = False

    def command(self, args: List[str]) -> List[str]:
        """Build the full helm command line for the given subcommand args."""
        cmd = [self.helm_bin] + list(args)
        if self.namespace:
            cmd.extend(["--namespace", self.namespace])
        if self.kubeconfig and not self.in_cluster:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        return cmd

    def env(self) -> Dict[str, str]:
        """Process environment for the helm subprocess."""
        env = dict(os.environ)
        if self.driver:
            env["HELM_DRIVER"] = self.driver
        return env


def _locate_helm(helm_bin: str) -> str:
    helm_path = shutil.which(helm_bin)
    if not helm_path:
        raise ConfigurationError(
            f"helm binary '{helm_bin}' not found. Ensure it is installed and on $PATH."
        )
    return helm_path


def configure_engine(
    settings: EngineSettings,
    namespace: Optional[str] = None,
    require_cluster: bool = True,
) -> EngineConfig:
    """
    Build an engine configuration scoped to a namespace.

    Selects in-cluster mode when the settings say so, otherwise the
    configured kubeconfig file. The connection configuration is loaded
    into a private kubernetes client Configuration purely to validate it;
    the global client configuration is left untouched.

    Args:
        settings: Process-wide engine settings
        namespace: Target namespace (defaults to settings.default_namespace)
        require_cluster: Skip cluster validation when False (repository
            operations and client-only renders never talk to the cluster)

    Returns:
        EngineConfig for a single request

    Raises:
        ConfigurationError: helm binary missing or connection config invalid
    """
    helm_path = _locate_helm(settings.helm_bin)

    if not require_cluster:
        # namespace kept as given; repository commands pass none
        return EngineConfig(
            helm_bin=helm_path,
            namespace=namespace,
            kubeconfig=None,
            driver=settings.driver,
            in_cluster=settings.in_cluster,
        )

    target_namespace = namespace or settings.default_namespace
    client_configuration = Configuration()

    if settings.in_cluster:
        try:
            k8s_config.load_incluster_config(client_configuration=client_configuration)
        except Exception as e:
            raise ConfigurationError(f"failed to initialize in-cluster configuration: {e}") from e
        logger.debug(f"Using in-cluster configuration for namespace {target_namespace}")
        kubeconfig = None
    else:
        if not settings.kubeconfig:
            raise ConfigurationError(
                "failed to initialize action configuration: no kubeconfig path configured"
            )
        try:
            k8s_config.load_kube_config(
                config_file=settings.kubeconfig,
                client_configuration=client_configuration,
                persist_config=False,
            )
        except Exception as e:
            raise ConfigurationError(
                f"failed to initialize action configuration from {settings.kubeconfig}: {e}"
            ) from e
        kubeconfig = settings.kubeconfig

    return EngineConfig(
        helm_bin=helm_path,
        namespace=target_namespace,
        kubeconfig=kubeconfig,
        driver=settings.driver,
        in_cluster=settings.in_cluster,
    )
