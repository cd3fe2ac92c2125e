# SPDX-License-Identifier: MPL-2.0
"""Supervision of the cloud signing desktop companion.

Cloud-held certificates (e.g. SimplySign) are only usable while the vendor's
desktop application is running.  This is best-effort: one launch, one check
after a settle delay, no automatic retries.
"""

import logging
import subprocess
import time
from pathlib import Path
from typing import Callable, Optional

import psutil

from authsign.core.exceptions import CloudSessionFailure
from authsign.core.models import SessionStatus

logger = logging.getLogger(__name__)


def _process_matches(proc_name: Optional[str], wanted: str) -> bool:
    if not proc_name:
        return False
    name = proc_name.lower()
    wanted = wanted.lower()
    return name == wanted or name == f"{wanted}.exe"


class CloudSessionManager:
    """Ensures a named companion process is running."""

    def __init__(
        self,
        process_name: str,
        executable: Optional[Path] = None,
        settle_seconds: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.process_name = process_name
        self.executable = Path(executable) if executable else None
        self.settle_seconds = settle_seconds
        self.sleep = sleep

    def is_running(self) -> bool:
        for proc in psutil.process_iter(["name"]):
            if _process_matches(proc.info.get("name"), self.process_name):
                return True
        return False

    def launch(self) -> None:
        if self.executable is None:
            raise CloudSessionFailure(
                f"{self.process_name} is not running and no executable is configured"
            )
        if not self.executable.is_file():
            raise CloudSessionFailure(f"Companion executable not found: {self.executable}")
        try:
            subprocess.Popen([str(self.executable)], close_fds=True)
        except OSError as e:
            raise CloudSessionFailure(f"Could not start {self.executable}: {e}") from e

    def ensure_session(self) -> SessionStatus:
        """Start the companion if needed and confirm it is alive.

        Raises:
            CloudSessionFailure: if it cannot be started or is not running
                after the settle delay
        """
        if self.is_running():
            logger.info("%s is already running", self.process_name)
            return SessionStatus.ALREADY_RUNNING
        logger.info("Starting %s", self.executable)
        self.launch()
        self.sleep(self.settle_seconds)
        if not self.is_running():
            raise CloudSessionFailure(
                f"{self.process_name} did not start within {self.settle_seconds:g} seconds"
            )
        return SessionStatus.STARTED
