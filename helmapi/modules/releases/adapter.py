import asyncio
import glob
import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from helmapi.config.provider import EngineSettings
from helmapi.modules.api.models import (
    InstallRequest,
    ReleaseDetail,
    ReleaseHistoryEntry,
    ReleaseSummary,
    UninstallRequest,
    UninstallResult,
    UpgradeRequest,
)
from helmapi.modules.engine import (
    ChartResolutionError,
    EngineConfig,
    EngineError,
    EngineResult,
    NotFoundError,
    RepositoryError,
    ValidationError,
    clean_stderr,
    configure_engine,
    is_not_found,
    run_helm,
)

logger = logging.getLogger(__name__)

# Most recent revisions returned by get_history
MAX_HISTORY = 256

# Extra time granted to the subprocess on top of helm's own --timeout
TIMEOUT_GRACE_SECONDS = 30


class ReleaseAdapter:
    """Translate API requests into helm commands and helm output into API records."""

    def __init__(self, settings: EngineSettings):
        """
        Initialize the adapter.

        Args:
            settings: Read-only engine settings created at startup
        """
        self.settings = settings

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    async def _engine(self, namespace: Optional[str], require_cluster: bool = True) -> EngineConfig:
        # kubeconfig loading reads files and may run exec credential plugins
        return await asyncio.to_thread(
            configure_engine, self.settings, namespace, require_cluster
        )

    def _deadline(self, timeout: Optional[int]) -> float:
        if timeout:
            return timeout + TIMEOUT_GRACE_SECONDS
        return self.settings.command_timeout

    @staticmethod
    def _require(value: Optional[str], field: str) -> None:
        if not value or not value.strip():
            raise ValidationError(f"{field} is required")

    @staticmethod
    def _check(result: EngineResult, operation: str, release_name: Optional[str] = None) -> None:
        """Raise the matching error for a failed helm invocation."""
        if result.ok:
            return
        message = clean_stderr(result.stderr) or f"exit status {result.returncode}"
        if release_name and is_not_found(result.stderr):
            raise NotFoundError(f"release '{release_name}' not found")
        raise EngineError(f"{operation} failed: {message}", result.returncode, result.stderr)

    def _default_repo(self, chart_ref: str) -> Optional[str]:
        """Registry URL for bare chart names that carry no source of their own."""
        if not self.settings.registry_url:
            return None
        if "/" in chart_ref or chart_ref.startswith("oci:") or os.path.exists(chart_ref):
            return None
        return self.settings.registry_url

    @asynccontextmanager
    async def _resolve_chart(self, engine: EngineConfig, request: InstallRequest) -> AsyncIterator[str]:
        """
        Locate and fetch the chart, yielding a path helm can install from.

        Local chart directories and archives are used as-is; everything else
        is pulled into a temporary directory that lives for the duration of
        the block.
        """
        chart_ref = request.chart_name
        repo_url = request.repo_url or self._default_repo(chart_ref)

        if not repo_url and os.path.exists(chart_ref):
            yield chart_ref
            return

        with tempfile.TemporaryDirectory(prefix="helmapi-chart-") as destination:
            args = ["pull", chart_ref, "--destination", destination]
            if repo_url:
                args.extend(["--repo", repo_url])
            if request.version:
                args.extend(["--version", request.version])

            result = await run_helm(engine, args, timeout=self.settings.command_timeout)
            if not result.ok:
                raise ChartResolutionError(
                    f"failed to locate chart: {clean_stderr(result.stderr) or chart_ref}"
                )

            archives = sorted(glob.glob(os.path.join(destination, "*.tgz")))
            if not archives:
                raise ChartResolutionError(f"failed to load chart: no archive fetched for {chart_ref}")

            logger.debug(f"Resolved chart {chart_ref} to {archives[0]}")
            yield archives[0]

    @contextmanager
    def _values_file(self, values: Dict[str, Any]) -> Iterator[Optional[str]]:
        """Write chart values to a temporary file (JSON is valid YAML)."""
        if not values:
            yield None
            return

        fd, path = tempfile.mkstemp(prefix="helmapi-values-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(values, f)
            yield path
        finally:
            os.unlink(path)

    @staticmethod
    def _release_flags(request: InstallRequest, client_only: bool = False) -> List[str]:
        """Flags shared by install and upgrade. Only install renders client-side."""
        flags = ["--output", "json"]
        if request.wait:
            flags.append("--wait")
        if client_only:
            flags.append("--dry-run=client")
        elif request.dry_run:
            flags.append("--dry-run")
        if request.timeout:
            flags.extend(["--timeout", f"{request.timeout}s"])
        if request.description:
            flags.extend(["--description", request.description])
        return flags

    async def _status(self, engine: EngineConfig, name: str, extra: Optional[List[str]] = None) -> Dict[str, Any]:
        args = ["status", name, "--output", "json"] + (extra or [])
        result = await run_helm(engine, args, timeout=self.settings.command_timeout)
        self._check(result, "status", release_name=name)
        return result.json()

    # -----------------------------------------------------------------------
    # Release management
    # -----------------------------------------------------------------------

    async def install(self, request: InstallRequest) -> ReleaseDetail:
        """
        Install a chart.

        Raises:
            ValidationError: release or chart name missing
            ChartResolutionError: chart cannot be located/loaded
            ConfigurationError: cluster connection config invalid
            EngineError: any other helm failure (name in use, apply failure)
        """
        self._require(request.release_name, "releaseName")
        self._require(request.chart_name, "chartName")

        # client-only renders never contact the cluster
        engine = await self._engine(
            request.namespace or self.settings.default_namespace,
            require_cluster=not request.client_only,
        )
        logger.info(
            f"Installing chart {request.chart_name} as {request.release_name} "
            f"in namespace {engine.namespace} (dry_run={request.dry_run})"
        )

        async with self._resolve_chart(engine, request) as chart_path:
            args = ["install", request.release_name, chart_path] + self._release_flags(
                request, client_only=request.client_only
            )
            if request.create_namespace:
                args.append("--create-namespace")

            with self._values_file(request.values) as values_path:
                if values_path:
                    args.extend(["--values", values_path])
                result = await run_helm(engine, args, timeout=self._deadline(request.timeout))

        self._check(result, "install")
        release = ReleaseDetail.from_release(result.json())
        logger.info(f"Installed release {release.name} revision {release.version}")
        return release

    async def upgrade(self, request: UpgradeRequest) -> ReleaseDetail:
        """
        Upgrade an existing release.

        Raises:
            NotFoundError: no deployed release with that name
            ChartResolutionError: chart cannot be located/loaded
            EngineError: any other helm failure
        """
        self._require(request.release_name, "releaseName")
        self._require(request.chart_name, "chartName")

        engine = await self._engine(request.namespace)
        logger.info(
            f"Upgrading release {request.release_name} to chart {request.chart_name} "
            f"in namespace {engine.namespace} (dry_run={request.dry_run})"
        )

        async with self._resolve_chart(engine, request) as chart_path:
            args = ["upgrade", request.release_name, chart_path] + self._release_flags(request)
            if request.reuse_values:
                args.append("--reuse-values")
            if request.reset_values:
                args.append("--reset-values")
            if request.force:
                args.append("--force")

            with self._values_file(request.values) as values_path:
                if values_path:
                    args.extend(["--values", values_path])
                result = await run_helm(engine, args, timeout=self._deadline(request.timeout))

        self._check(result, "upgrade", release_name=request.release_name)
        release = ReleaseDetail.from_release(result.json())
        logger.info(f"Upgraded release {release.name} to revision {release.version}")
        return release

    async def uninstall(self, request: UninstallRequest) -> UninstallResult:
        """
        Uninstall a release.

        The release is looked up first so a missing release is reported as
        NotFoundError rather than a generic failure.
        """
        self._require(request.release_name, "releaseName")

        engine = await self._engine(request.namespace)
        current = ReleaseSummary.from_release(await self._status(engine, request.release_name))

        args = ["uninstall", request.release_name]
        if request.keep_history:
            args.append("--keep-history")
        if request.wait:
            args.append("--wait")
        if request.dry_run:
            args.append("--dry-run")
        if request.timeout:
            args.extend(["--timeout", f"{request.timeout}s"])
        if request.description:
            args.extend(["--description", request.description])

        logger.info(
            f"Uninstalling release {request.release_name} from namespace {engine.namespace} "
            f"(keep_history={request.keep_history})"
        )
        result = await run_helm(engine, args, timeout=self._deadline(request.timeout))
        self._check(result, "uninstall", release_name=request.release_name)

        return UninstallResult(
            release=current,
            info=result.stdout.strip(),
            keep_history=request.keep_history,
        )

    # -----------------------------------------------------------------------
    # Release inspection
    # -----------------------------------------------------------------------

    async def list_releases(self, namespace: Optional[str] = None, all_namespaces: bool = False) -> List[ReleaseSummary]:
        """
        List releases.

        Returns an empty list when there are none. Ordering is whatever helm
        returns.
        """
        engine = await self._engine(namespace)
        args = ["list", "--output", "json", "--max", "0"]
        if all_namespaces:
            args.append("--all-namespaces")

        result = await run_helm(engine, args, timeout=self.settings.command_timeout)
        self._check(result, "list")

        if not result.stdout.strip():
            return []
        return [ReleaseSummary.from_list_entry(entry) for entry in result.json() or []]

    async def get_release(self, name: str, namespace: Optional[str] = None) -> ReleaseDetail:
        """Get the latest revision of a release."""
        self._require(name, "name")
        engine = await self._engine(namespace)
        return ReleaseDetail.from_release(await self._status(engine, name))

    async def get_history(self, name: str, namespace: Optional[str] = None) -> List[ReleaseHistoryEntry]:
        """Get at most the MAX_HISTORY most recent revisions, oldest first."""
        self._require(name, "name")
        engine = await self._engine(namespace)

        args = ["history", name, "--output", "json", "--max", str(MAX_HISTORY)]
        result = await run_helm(engine, args, timeout=self.settings.command_timeout)
        self._check(result, "history", release_name=name)

        entries = result.json() or []
        return [ReleaseHistoryEntry.from_history_entry(entry) for entry in entries[-MAX_HISTORY:]]

    async def get_status(self, name: str, namespace: Optional[str] = None) -> ReleaseDetail:
        """Get the current revision including live resource status."""
        self._require(name, "name")
        engine = await self._engine(namespace)
        return ReleaseDetail.from_release(await self._status(engine, name, ["--show-resources"]))

    # -----------------------------------------------------------------------
    # Repository management
    # -----------------------------------------------------------------------

    async def add_repository(self, name: str, url: str) -> None:
        """
        Register a chart repository and download its index.

        Raises:
            RepositoryError: registration or index download failed
        """
        self._require(name, "name")
        self._require(url, "url")

        engine = await self._engine(None, require_cluster=False)
        logger.info(f"Adding chart repository {name} ({url})")

        try:
            result = await run_helm(engine, ["repo", "add", name, url], timeout=self.settings.command_timeout)
        except EngineError as e:
            raise RepositoryError(f"failed to add repository {name}: {e.message}") from e

        if not result.ok:
            raise RepositoryError(
                f"failed to add repository {name}: {clean_stderr(result.stderr) or result.returncode}"
            )
