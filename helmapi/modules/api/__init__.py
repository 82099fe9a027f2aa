"""
API Module - Black Box Interface

Purpose: Request/response contract of the HTTP API
Interface: request/response models, body decoding, envelope helpers
Hidden: Content-type checks, pydantic error flattening, disconnect polling

The API module only translates - it contains no helm logic.
"""

from .body import (
    decode_json_body,
    json_body,
    respond,
    respond_with_error,
    run_bound_to_request,
)
from .models import (
    ApiResponse,
    InstallRequest,
    ReleaseDetail,
    ReleaseHistoryEntry,
    ReleaseSummary,
    RepositoryRequest,
    UninstallRequest,
    UninstallResult,
    UpgradeRequest,
)

__all__ = [
    "ApiResponse",
    "InstallRequest",
    "UpgradeRequest",
    "UninstallRequest",
    "RepositoryRequest",
    "ReleaseSummary",
    "ReleaseDetail",
    "ReleaseHistoryEntry",
    "UninstallResult",
    "decode_json_body",
    "json_body",
    "respond",
    "respond_with_error",
    "run_bound_to_request",
]
