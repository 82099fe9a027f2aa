"""
Logging configuration for the API server.

Applied with logging.config.dictConfig at import of helmapi.main and
passed to uvicorn so both share the same handlers. Liveness probes hit
/api/v1/health every few seconds, so those access lines are dropped.
"""

import logging
from typing import Any, Dict, Iterable

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

PROBE_PATHS = ("/api/v1/health",)


class ProbeFilter(logging.Filter):
    """Drop uvicorn access records for probe endpoints."""

    def __init__(self, paths: Iterable[str] = PROBE_PATHS):
        super().__init__()
        self.paths = tuple(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn access args: (client_addr, method, full_path, http_version, status_code)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            path = str(args[2]).split("?", 1)[0]
            return path not in self.paths
        return True


def _logger(handler: str, level: str) -> Dict[str, Any]:
    return {"handlers": [handler], "level": level, "propagate": False}


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Build the dictConfig mapping for the given level name."""
    level = level.upper()
    if level not in LEVELS:
        level = "INFO"

    loggers = {name: _logger("default", level) for name in ("uvicorn", "uvicorn.error", "helmapi")}
    loggers["uvicorn.access"] = _logger("access", level)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "probes": {"()": ProbeFilter},
        },
        "formatters": {
            "default": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "access": {"format": "%(asctime)s - access - %(message)s"},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["probes"],
            },
        },
        "loggers": loggers,
        "root": {"level": level, "handlers": ["default"]},
    }
