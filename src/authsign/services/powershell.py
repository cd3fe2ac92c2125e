# SPDX-License-Identifier: MPL-2.0
"""Thin wrapper for running Windows PowerShell commands.

All platform work (Authenticode, certificate stores, PS2EXE) goes through
:func:`run_powershell`, which enforces a bounded wait on the child process.
"""

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from authsign.core.exceptions import AuthsignError, ServiceTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
POWERSHELL_CANDIDATES = ("powershell.exe", "powershell", "pwsh.exe", "pwsh")
BASE_ARGS = ["-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command"]


class PowerShellNotFoundError(AuthsignError):
    """Raised when no PowerShell executable is on PATH."""


class PowerShellOutputError(AuthsignError):
    """Raised when PowerShell output is not the JSON a command was expected to print."""


@dataclass
class PowerShellResult:
    """Captured output of a PowerShell invocation."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def error_text(self) -> str:
        return (self.stderr or self.stdout).strip() or f"exit code {self.returncode}"

    def json(self) -> Any:
        """Parse stdout as the output of ``ConvertTo-Json``.

        An empty pipeline prints nothing, which is returned as ``None``.
        """
        out = self.stdout.strip()
        if not out:
            return None
        try:
            return json.loads(out)
        except ValueError as e:
            raise PowerShellOutputError(
                f"Unreadable PowerShell output: {e}", details={"stdout": out[:200]}
            ) from e


def quote(value: Any) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def find_powershell(candidates: Sequence[str] = POWERSHELL_CANDIDATES) -> str:
    for name in candidates:
        found = shutil.which(name)
        if found:
            return found
    raise PowerShellNotFoundError("PowerShell was not found on PATH")


def run_powershell(
    script: str,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    executable: Optional[str] = None,
) -> PowerShellResult:
    """Run a PowerShell command and capture its output.

    Args:
        script: PowerShell source passed to ``-Command``
        timeout: Seconds to wait before giving up, ``None`` waits forever
        executable: Explicit PowerShell binary, looked up on PATH if omitted

    Raises:
        ServiceTimeoutError: if the process does not finish in time
        PowerShellNotFoundError: if PowerShell is not installed
    """
    command: List[str] = [executable or find_powershell(), *BASE_ARGS, script]
    logger.debug("Running PowerShell: %s", script)
    try:
        proc = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ServiceTimeoutError(
            f"PowerShell did not finish within {timeout} seconds",
            timeout=timeout,
            details={"script": script},
        ) from e
    except OSError as e:
        raise PowerShellNotFoundError(f"Could not start PowerShell: {e}") from e
    return PowerShellResult(proc.returncode, proc.stdout, proc.stderr)


class PowerShellRunner:
    """Callable holding the PowerShell binary and timeout for a service."""

    def __init__(self, timeout: Optional[float] = DEFAULT_TIMEOUT, executable: Optional[str] = None):
        self.timeout = timeout
        self.executable = executable

    def __call__(self, script: str) -> PowerShellResult:
        return run_powershell(script, timeout=self.timeout, executable=self.executable)
