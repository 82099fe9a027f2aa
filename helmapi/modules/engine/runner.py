import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .config import EngineConfig
from .errors import ConfigurationError, EngineError

logger = logging.getLogger(__name__)


@dataclass
class EngineResult:
    """Outcome of a single helm invocation."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def json(self) -> Any:
        """Parse stdout as JSON (helm -o json output)."""
        try:
            return json.loads(self.stdout)
        except (json.JSONDecodeError, ValueError) as e:
            raise EngineError(f"helm returned invalid JSON: {e}") from e


def _kill(process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass


async def run_helm(
    engine: EngineConfig,
    args: List[str],
    timeout: Optional[float] = None,
) -> EngineResult:
    """
    Run one helm command as a subprocess.

    The subprocess is killed when the deadline passes or when the calling
    task is cancelled (e.g. the HTTP client went away).

    Args:
        engine: Per-request engine configuration
        args: helm subcommand and its arguments
        timeout: Deadline in seconds (None waits forever)

    Returns:
        EngineResult; non-zero exit codes are returned, not raised

    Raises:
        ConfigurationError: helm could not be started
        EngineError: deadline exceeded
    """
    cmd = engine.command(args)
    logger.debug(f"exec: {' '.join(cmd)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=engine.env(),
        )
    except FileNotFoundError as e:
        raise ConfigurationError(f"'{cmd[0]}' not found: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        _kill(process)
        await process.wait()
        logger.error(f"helm {args[0]} timed out after {timeout}s")
        raise EngineError(f"helm {args[0]} timed out after {timeout}s")
    except asyncio.CancelledError:
        logger.warning(f"helm {args[0]} cancelled, killing process")
        _kill(process)
        await asyncio.shield(process.wait())
        raise

    return EngineResult(
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )
