# SPDX-License-Identifier: MPL-2.0
"""Tests for the cloud session manager."""

from pathlib import Path

import pytest

from authsign.core.exceptions import CloudSessionFailure
from authsign.core.models import SessionStatus
from authsign.services import session as session_module
from authsign.services.session import CloudSessionManager


class FakeProcess:
    def __init__(self, name):
        self.info = {"name": name}


@pytest.fixture
def processes(monkeypatch):
    running = []
    monkeypatch.setattr(
        session_module.psutil,
        "process_iter",
        lambda attrs=None: [FakeProcess(n) for n in running],
    )
    return running


@pytest.fixture
def companion(tmp_path: Path) -> Path:
    path = tmp_path / "SimplySignDesktop.exe"
    path.write_bytes(b"MZ")
    return path


def test_already_running(processes) -> None:
    processes.append("SimplySignDesktop.exe")
    manager = CloudSessionManager("SimplySignDesktop", sleep=lambda s: None)
    assert manager.ensure_session() == SessionStatus.ALREADY_RUNNING


def test_name_match_is_case_insensitive(processes) -> None:
    processes.append("simplysigndesktop.EXE")
    assert CloudSessionManager("SimplySignDesktop").is_running()


def test_starts_and_confirms(processes, companion, monkeypatch) -> None:
    launched = []

    def fake_popen(args, **kwargs):
        launched.append(args)
        processes.append("SimplySignDesktop.exe")

    monkeypatch.setattr(session_module.subprocess, "Popen", fake_popen)
    waits = []
    manager = CloudSessionManager("SimplySignDesktop", companion, settle_seconds=3, sleep=waits.append)

    assert manager.ensure_session() == SessionStatus.STARTED
    assert launched == [[str(companion)]]
    assert waits == [3]


def test_not_alive_after_settle_delay(processes, companion, monkeypatch) -> None:
    monkeypatch.setattr(session_module.subprocess, "Popen", lambda args, **kwargs: None)
    manager = CloudSessionManager("SimplySignDesktop", companion, sleep=lambda s: None)
    with pytest.raises(CloudSessionFailure, match="did not start"):
        manager.ensure_session()


def test_no_executable_configured(processes) -> None:
    with pytest.raises(CloudSessionFailure, match="no executable"):
        CloudSessionManager("SimplySignDesktop").ensure_session()


def test_missing_executable(processes, tmp_path) -> None:
    manager = CloudSessionManager("SimplySignDesktop", tmp_path / "missing.exe")
    with pytest.raises(CloudSessionFailure, match="not found"):
        manager.ensure_session()
