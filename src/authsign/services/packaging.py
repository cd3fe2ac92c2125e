# SPDX-License-Identifier: MPL-2.0
"""Script to executable conversion with the PS2EXE module.

The converter writes to a temporary file next to the target and the result is
moved into place only after PS2EXE succeeds, so a failed conversion never
leaves a partial executable behind.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

from authsign.config import Architecture, PackagingOptions
from authsign.core.exceptions import (
    InvalidScriptError,
    OutputCollisionError,
    PackagingBackendMissingError,
    PackagingServiceFailure,
    ServiceTimeoutError,
)
from authsign.services.powershell import (
    DEFAULT_TIMEOUT,
    PowerShellNotFoundError,
    PowerShellOutputError,
    PowerShellResult,
    PowerShellRunner,
    quote,
)

logger = logging.getLogger(__name__)

PS2EXE_MODULE = "ps2exe"

_BACKEND_SCRIPT = "[bool](Get-Module -ListAvailable -Name {module}) | ConvertTo-Json -Compress"

_PARSE_SCRIPT = """
$errors = $null
[void][System.Management.Automation.Language.Parser]::ParseFile({path}, [ref]$null, [ref]$errors)
@($errors | ForEach-Object {{ "line $($_.Extent.StartLineNumber): $($_.Message)" }}) | ConvertTo-Json -Compress
"""


def default_output_path(script_path: Path) -> Path:
    """Same directory and base name as the script, with ``.exe``."""
    return Path(script_path).with_suffix(".exe")


def build_ps2exe_command(script_path: Path, output_path: Path, options: PackagingOptions) -> str:
    """Build the ``Invoke-PS2EXE`` call for the given options."""
    parts: List[str] = [
        f"Import-Module {PS2EXE_MODULE} -ErrorAction Stop;",
        "Invoke-PS2EXE",
        f"-inputFile {quote(script_path)}",
        f"-outputFile {quote(output_path)}",
    ]
    if options.icon_path:
        parts.append(f"-iconFile {quote(options.icon_path)}")
    if options.product_name:
        parts.append(f"-product {quote(options.product_name)}")
        parts.append(f"-title {quote(options.product_name)}")
    if options.description:
        parts.append(f"-description {quote(options.description)}")
    if options.company:
        parts.append(f"-company {quote(options.company)}")
    if options.copyright:
        parts.append(f"-copyright {quote(options.copyright)}")
    if options.version:
        parts.append(f"-version {quote(options.version)}")
    if options.no_console:
        parts.append("-noConsole")
    if options.require_admin:
        parts.append("-requireAdmin")
    if options.architecture == Architecture.X86:
        parts.append("-x86")
    elif options.architecture == Architecture.X64:
        parts.append("-x64")
    parts.append("-ErrorAction Stop")
    return " ".join(parts)


class PS2EXEPackagingService:
    """Converts PowerShell scripts to executables with PS2EXE."""

    def __init__(
        self,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        runner: Optional[PowerShellRunner] = None,
    ) -> None:
        self.run = runner or PowerShellRunner(timeout=timeout)

    def _call(self, script: str) -> PowerShellResult:
        try:
            return self.run(script)
        except PowerShellNotFoundError as e:
            raise PackagingBackendMissingError(e.message) from e
        except ServiceTimeoutError as e:
            raise PackagingServiceFailure(e.message, details=e.details) from e

    @staticmethod
    def _json(result: PowerShellResult):
        try:
            return result.json()
        except PowerShellOutputError as e:
            raise PackagingServiceFailure(e.message, details=e.details) from e

    def backend_available(self) -> bool:
        result = self._call(_BACKEND_SCRIPT.format(module=quote(PS2EXE_MODULE)))
        return result.ok and self._json(result) is True

    def syntax_errors(self, script_path: Path) -> List[str]:
        result = self._call(_PARSE_SCRIPT.format(path=quote(script_path)))
        if not result.ok:
            raise PackagingServiceFailure(f"Could not parse {script_path}: {result.error_text()}")
        errors = self._json(result) or []
        return [errors] if isinstance(errors, str) else list(errors)

    def package(
        self,
        script_path: Path,
        output_path: Path,
        options: Optional[PackagingOptions] = None,
    ) -> Path:
        """Convert ``script_path`` into ``output_path``.

        Raises:
            PackagingBackendMissingError: if PS2EXE is not installed
            InvalidScriptError: if the script has syntax errors
            OutputCollisionError: if the output exists and overwrite is off
            PackagingServiceFailure: if the conversion itself fails
        """
        options = options or PackagingOptions()
        script_path = Path(script_path)
        output_path = Path(output_path)

        if output_path.exists() and not options.overwrite:
            raise OutputCollisionError(
                f"Output file already exists: {output_path}",
                details={"output_path": str(output_path)},
            )
        if not self.backend_available():
            raise PackagingBackendMissingError(
                f"PowerShell module '{PS2EXE_MODULE}' is not installed "
                f"(Install-Module {PS2EXE_MODULE} -Scope CurrentUser)"
            )
        errors = self.syntax_errors(script_path)
        if errors:
            raise InvalidScriptError(
                f"{script_path.name} has {len(errors)} syntax error(s): {errors[0]}",
                details={"errors": errors},
            )

        temp_path = output_path.with_name(f".{output_path.stem}.{uuid.uuid4().hex[:8]}.tmp.exe")
        try:
            result = self._call(build_ps2exe_command(script_path, temp_path, options))
            if not result.ok or not temp_path.is_file():
                raise PackagingServiceFailure(
                    f"PS2EXE failed for {script_path.name}: {result.error_text()}"
                )
            try:
                os.replace(temp_path, output_path)
            except OSError as e:
                raise PackagingServiceFailure(f"Cannot write {output_path}: {e}") from e
        finally:
            if temp_path.exists():
                temp_path.unlink()
        logger.info("Converted %s to %s", script_path, output_path)
        return output_path
