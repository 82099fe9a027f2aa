"""
helmapi shared data models.

Request records are decoded from camelCase JSON bodies; response records
are built from helm's JSON output and serialized back with camelCase keys.
"""

import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

# helm list/history report charts as "<name>-<version>"; names may contain
# dashes and digits, versions are semver
_CHART_RE = re.compile(r"^(?P<name>.+)-(?P<version>v?\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.+-]*)?)$")


def split_chart(chart: str) -> Tuple[str, str]:
    """Split a helm '<name>-<version>' chart label into its parts."""
    match = _CHART_RE.match(chart or "")
    if not match:
        return chart or "", ""
    return match.group("name"), match.group("version")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# Request Models (API Input)


class InstallRequest(_CamelModel):
    """Parameters for chart installation."""

    release_name: str = Field(..., alias="releaseName", min_length=1)
    chart_name: str = Field(..., alias="chartName", min_length=1)
    repo_url: Optional[str] = Field(None, alias="repoURL")
    version: Optional[str] = None
    namespace: Optional[str] = None
    values: Dict[str, Any] = Field(default_factory=dict)
    wait: bool = False
    timeout: Optional[int] = Field(None, ge=0, description="Timeout in seconds")
    create_namespace: bool = Field(False, alias="createNamespace")
    dry_run: bool = Field(False, alias="dryRun")
    client_only: bool = Field(False, alias="clientOnly")
    description: Optional[str] = None

    @field_validator("release_name", "chart_name")
    @classmethod
    def validate_not_blank(cls, v):
        """Reject whitespace-only names."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("values", mode="before")
    @classmethod
    def validate_values(cls, v):
        """Chart values must be a JSON object; null means none."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("values must be a JSON object")
        return v


class UpgradeRequest(InstallRequest):
    """Parameters for upgrading an existing release."""

    reuse_values: bool = Field(False, alias="reuseValues")
    reset_values: bool = Field(False, alias="resetValues")
    force: bool = False


class UninstallRequest(_CamelModel):
    """Parameters for uninstalling a release."""

    release_name: str = Field(..., alias="releaseName", min_length=1)
    namespace: Optional[str] = None
    keep_history: bool = Field(False, alias="keepHistory")
    wait: bool = False
    timeout: Optional[int] = Field(None, ge=0, description="Timeout in seconds")
    dry_run: bool = Field(False, alias="dryRun")
    description: Optional[str] = None

    @field_validator("release_name")
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class RepositoryRequest(_CamelModel):
    """A chart repository to register."""

    name: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https", "oci") or not parsed.netloc:
            raise ValueError(f"unsupported repository URL: {v}")
        return v


# Response Models (API Output)


class ReleaseSummary(_CamelModel):
    """Summarized release information."""

    name: str
    namespace: str
    version: int
    status: str
    last_deployed: str = Field(..., alias="lastDeployed")
    chart: str
    app_version: Optional[str] = Field(None, alias="appVersion")

    @classmethod
    def from_list_entry(cls, data: Dict[str, Any]) -> "ReleaseSummary":
        """Create from a ``helm list --output json`` entry."""
        chart_name, _ = split_chart(str(data.get("chart", "")))
        return cls(
            name=str(data.get("name", "")),
            namespace=str(data.get("namespace", "")),
            version=int(data.get("revision", 0) or 0),
            status=str(data.get("status", "")),
            last_deployed=str(data.get("updated", "")),
            chart=chart_name,
            app_version=data.get("app_version") or None,
        )

    @classmethod
    def from_release(cls, release: Dict[str, Any]) -> "ReleaseSummary":
        """Create from a full helm release object."""
        info = release.get("info") or {}
        metadata = (release.get("chart") or {}).get("metadata") or {}
        return cls(
            name=str(release.get("name", "")),
            namespace=str(release.get("namespace", "")),
            version=int(release.get("version", 0) or 0),
            status=str(info.get("status", "")),
            last_deployed=str(info.get("last_deployed", "")),
            chart=str(metadata.get("name", "")),
            app_version=metadata.get("appVersion") or None,
        )


class ReleaseDetail(ReleaseSummary):
    """Detailed release information."""

    description: Optional[str] = None
    first_deployed: str = Field("", alias="firstDeployed")
    chart_version: str = Field("", alias="chartVersion")
    values: Optional[Dict[str, Any]] = None
    manifest: Optional[str] = None
    notes: Optional[str] = None
    # live objects keyed by "apiVersion/Kind"; only present for status --show-resources
    resources: Optional[Dict[str, List[Dict[str, Any]]]] = None

    @classmethod
    def from_release(cls, release: Dict[str, Any]) -> "ReleaseDetail":
        """Create from a helm release object (install/upgrade/status --output json)."""
        info = release.get("info") or {}
        metadata = (release.get("chart") or {}).get("metadata") or {}
        return cls(
            name=str(release.get("name", "")),
            namespace=str(release.get("namespace", "")),
            version=int(release.get("version", 0) or 0),
            status=str(info.get("status", "")),
            description=info.get("description") or None,
            first_deployed=str(info.get("first_deployed", "")),
            last_deployed=str(info.get("last_deployed", "")),
            chart=str(metadata.get("name", "")),
            chart_version=str(metadata.get("version", "")),
            app_version=metadata.get("appVersion") or None,
            values=release.get("config") or None,
            manifest=release.get("manifest") or None,
            notes=info.get("notes") or None,
            resources=info.get("resources") or None,
        )


class ReleaseHistoryEntry(_CamelModel):
    """One revision in a release's history."""

    revision: int
    status: str
    chart: str
    chart_version: str = Field("", alias="chartVersion")
    app_version: Optional[str] = Field(None, alias="appVersion")
    description: Optional[str] = None
    deployed_at: str = Field(..., alias="deployedAt")

    @classmethod
    def from_history_entry(cls, data: Dict[str, Any]) -> "ReleaseHistoryEntry":
        """Create from a ``helm history --output json`` entry."""
        chart_name, chart_version = split_chart(str(data.get("chart", "")))
        return cls(
            revision=int(data.get("revision", 0) or 0),
            status=str(data.get("status", "")),
            chart=chart_name,
            chart_version=chart_version,
            app_version=data.get("app_version") or None,
            description=data.get("description") or None,
            deployed_at=str(data.get("updated", "")),
        )


class UninstallResult(_CamelModel):
    """Outcome of an uninstall."""

    release: ReleaseSummary
    info: str = ""
    keep_history: bool = Field(False, alias="keepHistory")


class ApiResponse(BaseModel):
    """Envelope wrapping every API response."""

    success: bool
    message: Optional[str] = None
    data: Optional[Any] = None


__all__ = [
    "InstallRequest",
    "UpgradeRequest",
    "UninstallRequest",
    "RepositoryRequest",
    "ReleaseSummary",
    "ReleaseDetail",
    "ReleaseHistoryEntry",
    "UninstallResult",
    "ApiResponse",
    "split_chart",
]
