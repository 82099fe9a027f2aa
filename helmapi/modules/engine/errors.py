"""
Error taxonomy shared by the action adapter and the HTTP layer.

Every error carries the HTTP status it is surfaced with.
"""

import re
from typing import Optional


class HelmApiError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HelmApiError):
    """Malformed or missing request fields."""

    status_code = 400


class ChartResolutionError(HelmApiError):
    """The chart could not be located or loaded."""

    status_code = 400


class NotFoundError(HelmApiError):
    """No such release."""

    status_code = 404


class ConfigurationError(HelmApiError):
    """Cluster connection configuration could not be established."""

    status_code = 500


class EngineError(HelmApiError):
    """Catch-all for downstream helm failures."""

    status_code = 500

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class RepositoryError(HelmApiError):
    """Chart repository registration or index download failed."""

    status_code = 500


# helm reports missing releases with these phrases across get/status/history,
# uninstall and upgrade
_NOT_FOUND_PATTERNS = [
    re.compile(r"release: not found", re.IGNORECASE),
    re.compile(r"has no deployed releases", re.IGNORECASE),
    re.compile(r"release not loaded", re.IGNORECASE),
]


def is_not_found(stderr: str) -> bool:
    """Check whether helm stderr describes a missing release."""
    return any(p.search(stderr) for p in _NOT_FOUND_PATTERNS)


def clean_stderr(stderr: str) -> str:
    """
    Extract helm's error message from stderr.

    Keeps everything from the last "Error: " line to the end, so the
    itemised causes of multi-error failures stay attached to the headline.
    Warnings printed before it are dropped.
    """
    lines = [line.rstrip() for line in stderr.splitlines() if line.strip()]
    if not lines:
        return ""
    start = len(lines) - 1
    for index, line in enumerate(lines):
        if line.startswith("Error: "):
            start = index
    message = [line.strip() for line in lines[start:]]
    if message[0].startswith("Error: "):
        message[0] = message[0][len("Error: "):]
    return "\n".join(message)
