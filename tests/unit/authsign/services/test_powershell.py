# SPDX-License-Identifier: MPL-2.0
"""Tests for the PowerShell runner."""

import subprocess

import pytest

from authsign.core.exceptions import AuthsignError, ServiceTimeoutError
from authsign.services import powershell
from authsign.services.powershell import (
    PowerShellOutputError,
    PowerShellResult,
    quote,
    run_powershell,
)


def test_quote_escapes_single_quotes() -> None:
    assert quote("O'Brien & Sons") == "'O''Brien & Sons'"


def test_result_json() -> None:
    assert PowerShellResult(0, '{"a": 1}\r\n', "").json() == {"a": 1}
    assert PowerShellResult(0, "  ", "").json() is None


def test_result_json_rejects_text_before_payload() -> None:
    result = PowerShellResult(0, "WARNING: module loaded\ntrue", "")
    with pytest.raises(PowerShellOutputError) as excinfo:
        result.json()
    assert isinstance(excinfo.value, AuthsignError)
    assert excinfo.value.details["stdout"].startswith("WARNING")


def test_error_text_prefers_stderr() -> None:
    assert PowerShellResult(1, "out", "err").error_text() == "err"
    assert PowerShellResult(3, "", "").error_text() == "exit code 3"


def test_run_passes_noninteractive_flags(monkeypatch) -> None:
    seen = {}

    def fake_run(command, **kwargs):
        seen["command"] = command
        seen["timeout"] = kwargs["timeout"]
        return subprocess.CompletedProcess(command, 0, "ok", "")

    monkeypatch.setattr(powershell.subprocess, "run", fake_run)
    result = run_powershell("Get-Date", timeout=7, executable="pwsh")
    assert result.ok
    assert seen["command"][0] == "pwsh"
    assert "-NonInteractive" in seen["command"]
    assert seen["command"][-1] == "Get-Date"
    assert seen["timeout"] == 7


def test_run_timeout(monkeypatch) -> None:
    def fake_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr(powershell.subprocess, "run", fake_run)
    with pytest.raises(ServiceTimeoutError) as excinfo:
        run_powershell("Start-Sleep 600", timeout=1, executable="pwsh")
    assert excinfo.value.timeout == 1


def test_missing_powershell(monkeypatch) -> None:
    monkeypatch.setattr(powershell.shutil, "which", lambda name: None)
    with pytest.raises(powershell.PowerShellNotFoundError):
        run_powershell("Get-Date")
