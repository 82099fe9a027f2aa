"""
Shared pytest fixtures for helmapi tests.

This module provides common fixtures including:
- HelmMocker: Mock helm subprocess calls with canned responses
- Engine settings and adapter fixtures with cluster validation bypassed
- FastAPI test client wired to the adapter
"""

import json
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Pattern, Union
from unittest.mock import patch

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from helmapi.config.provider import EngineSettings
from helmapi.modules.engine import EngineConfig
from helmapi.modules.releases import ReleaseAdapter


# =============================================================================
# Helm Mocking Infrastructure
# =============================================================================

@dataclass
class HelmResponse:
    """Represents a mocked helm command response."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0
    delay: float = 0.0
    side_effect: Optional[Callable[[List[str]], None]] = None


@dataclass
class HelmCall:
    """Record of a helm call made during testing."""
    command: List[str]
    full_command_str: str
    env: Dict[str, str] = field(default_factory=dict)
    matched_pattern: Optional[str] = None


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, response: HelmResponse):
        self._response = response
        self.returncode = None
        self.killed = False
        self.reaped = False

    async def communicate(self):
        if self._response.delay:
            import asyncio
            await asyncio.sleep(self._response.delay)
        self.returncode = self._response.returncode
        return self._response.stdout.encode(), self._response.stderr.encode()

    def kill(self):
        self.killed = True
        self.returncode = -9

    async def wait(self):
        self.reaped = True
        return self.returncode


class HelmMocker:
    """
    Mock helm subprocess calls with pattern-matched responses.

    Usage:
        async def test_status(helm_mocker, adapter):
            helm_mocker.register("status web", HelmResponse(stdout=json.dumps(make_release())))

            release = await adapter.get_release("web")

            assert helm_mocker.was_called_with("status web")
    """

    def __init__(self):
        self._responses: List[tuple] = []
        self._call_history: List[HelmCall] = []
        self.processes: List[FakeProcess] = []
        self._default_response = HelmResponse(
            stderr="Error: mock not configured for this command",
            returncode=1
        )

    def register(
        self,
        pattern: Union[str, Pattern],
        response: HelmResponse,
        priority: int = 0
    ) -> "HelmMocker":
        """
        Register a response for commands matching the pattern.

        Args:
            pattern: String (substring match) or regex pattern
            response: HelmResponse to return when matched
            priority: Higher priority patterns are checked first
        """
        self._responses.append((pattern, response, priority))
        self._responses.sort(key=lambda x: x[2], reverse=True)
        return self

    async def mock_exec(self, *cmd, **kwargs) -> FakeProcess:
        """Replacement for asyncio.create_subprocess_exec."""
        cmd = list(cmd)
        helm_args = " ".join(cmd[1:])
        matched_pattern = None
        response = self._default_response

        for pattern, resp, _ in self._responses:
            if isinstance(pattern, str):
                if pattern in helm_args:
                    matched_pattern = pattern
                    response = resp
                    break
            elif pattern.search(helm_args):
                matched_pattern = pattern.pattern
                response = resp
                break

        self._call_history.append(HelmCall(
            command=cmd,
            full_command_str=" ".join(cmd),
            env=kwargs.get("env") or {},
            matched_pattern=matched_pattern,
        ))

        if response.side_effect:
            response.side_effect(cmd)

        process = FakeProcess(response)
        self.processes.append(process)
        return process

    @property
    def calls(self) -> List[HelmCall]:
        """Get all helm calls made during the test."""
        return self._call_history

    @property
    def call_count(self) -> int:
        return len(self._call_history)

    def was_called_with(self, pattern: str) -> bool:
        """Check if any call contained the given pattern."""
        return any(pattern in call.full_command_str for call in self._call_history)

    def get_calls_matching(self, pattern: str) -> List[HelmCall]:
        """Get all calls containing the given pattern."""
        return [c for c in self._call_history if pattern in c.full_command_str]


# =============================================================================
# Canned helm output
# =============================================================================

def make_release(
    name: str = "web",
    namespace: str = "default",
    version: int = 1,
    status: str = "deployed",
    chart: str = "nginx",
    chart_version: str = "15.0.0",
    app_version: str = "1.25.0",
    values: Optional[Dict[str, Any]] = None,
    manifest: str = "---\napiVersion: v1\nkind: Service\nmetadata:\n  name: web\n",
    notes: str = "Thanks for installing nginx.",
    description: str = "Install complete",
    resources: Optional[Dict[str, List[Dict[str, Any]]]] = None,
) -> Dict[str, Any]:
    """Build a release object shaped like `helm status --output json`."""
    release = {
        "name": name,
        "namespace": namespace,
        "version": version,
        "info": {
            "first_deployed": "2024-05-01T10:00:00.000000000Z",
            "last_deployed": "2024-05-02T11:30:00.000000000Z",
            "deleted": "",
            "description": description,
            "status": status,
            "notes": notes,
        },
        "chart": {
            "metadata": {
                "name": chart,
                "version": chart_version,
                "appVersion": app_version,
                "apiVersion": "v2",
            },
        },
        "config": values if values is not None else {"replicaCount": 2},
        "manifest": manifest,
    }
    if resources is not None:
        release["info"]["resources"] = resources
    return release


def make_history(count: int, chart: str = "nginx-15.0.0") -> List[Dict[str, Any]]:
    """Build `helm history --output json` entries, oldest first."""
    return [
        {
            "revision": revision,
            "updated": "2024-05-02T11:30:00Z",
            "status": "deployed" if revision == count else "superseded",
            "chart": chart,
            "app_version": "1.25.0",
            "description": "Upgrade complete" if revision > 1 else "Install complete",
        }
        for revision in range(1, count + 1)
    ]


def release_response(**kwargs) -> HelmResponse:
    return HelmResponse(stdout=json.dumps(make_release(**kwargs)))


def write_pulled_archive(cmd: List[str]) -> None:
    """Side effect for `helm pull`: drop an archive into --destination."""
    destination = cmd[cmd.index("--destination") + 1]
    chart = os.path.basename(cmd[2])
    with open(os.path.join(destination, f"{chart}-15.0.0.tgz"), "wb") as f:
        f.write(b"\x1f\x8b")


def pull_response() -> HelmResponse:
    return HelmResponse(side_effect=write_pulled_archive)


NOT_FOUND = HelmResponse(stderr="Error: release: not found\n", returncode=1)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def helm_mocker():
    """HelmMocker with asyncio.create_subprocess_exec patched."""
    mocker = HelmMocker()
    with patch(
        "helmapi.modules.engine.runner.asyncio.create_subprocess_exec",
        side_effect=mocker.mock_exec,
    ):
        yield mocker


@pytest.fixture
def engine_settings():
    return EngineSettings(
        in_cluster=False,
        kubeconfig="/home/test/.kube/config",
        driver="secret",
        registry_url=None,
        helm_bin="helm",
        default_namespace="default",
        command_timeout=30,
    )


def _fake_configure_engine(settings, namespace=None, require_cluster=True):
    """configure_engine without binary lookup or kubeconfig validation."""
    if not require_cluster:
        return EngineConfig(helm_bin="/usr/local/bin/helm", namespace=namespace, kubeconfig=None, driver=settings.driver)
    return EngineConfig(
        helm_bin="/usr/local/bin/helm",
        namespace=namespace or settings.default_namespace,
        kubeconfig=None if settings.in_cluster else settings.kubeconfig,
        driver=settings.driver,
        in_cluster=settings.in_cluster,
    )


@pytest.fixture
def fake_cluster():
    """Bypass helm binary lookup and kubeconfig validation."""
    with patch(
        "helmapi.modules.releases.adapter.configure_engine",
        side_effect=_fake_configure_engine,
    ) as configure:
        yield configure


@pytest.fixture
def adapter(engine_settings, fake_cluster):
    return ReleaseAdapter(engine_settings)


@pytest.fixture
def client(adapter):
    """FastAPI TestClient using the test adapter."""
    from fastapi.testclient import TestClient

    from helmapi.main import app, get_adapter

    app.dependency_overrides[get_adapter] = lambda: adapter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "helm_mock: Tests using mocked helm subprocess calls"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests requiring a real cluster"
    )
