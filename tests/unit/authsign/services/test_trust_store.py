# SPDX-License-Identifier: MPL-2.0
"""Tests for trust store installation."""

from pathlib import Path

import pytest

from authsign.core.crypto import thumbprint
from authsign.core.exceptions import (
    InsufficientPrivilegeError,
    InvalidCertificateError,
    ServiceTimeoutError,
    TrustStoreError,
)
from authsign.core.models import InstallResult
from authsign.services.powershell import PowerShellResult
from authsign.services.trust_store import InMemoryTrustStore, TrustStoreInstaller, WindowsTrustStore
from conftest import make_certificate, write_certificate


@pytest.fixture
def cert_file(tmp_path: Path) -> Path:
    return write_certificate(tmp_path / "certificate.cer", make_certificate("Publisher"))


class TestTrustStoreInstaller:
    """Test cases for TrustStoreInstaller."""

    def test_install_is_idempotent(self, cert_file: Path) -> None:
        store = InMemoryTrustStore()
        installer = TrustStoreInstaller([store], privilege_check=lambda: True)

        assert installer.install(cert_file) == InstallResult.INSTALLED
        after_first = store.thumbprints()
        assert installer.install(cert_file) == InstallResult.ALREADY_TRUSTED
        assert store.thumbprints() == after_first
        assert len(after_first) == 1

    def test_adds_to_every_store(self, cert_file: Path) -> None:
        root, publisher = InMemoryTrustStore("Root"), InMemoryTrustStore("TrustedPublisher")
        installer = TrustStoreInstaller([root, publisher], privilege_check=lambda: True)
        assert installer.install(cert_file) == InstallResult.INSTALLED
        assert root.thumbprints() == publisher.thumbprints()

    def test_partially_trusted_is_completed(self, cert_file: Path) -> None:
        root, publisher = InMemoryTrustStore("Root"), InMemoryTrustStore("TrustedPublisher")
        installer = TrustStoreInstaller([root, publisher], privilege_check=lambda: True)
        TrustStoreInstaller([root], privilege_check=lambda: True).install(cert_file)
        assert installer.install(cert_file) == InstallResult.INSTALLED
        assert len(publisher.thumbprints()) == 1

    def test_requires_elevation_before_touching_store(self, cert_file: Path) -> None:
        class ExplodingStore(InMemoryTrustStore):
            def contains(self, thumbprint):
                raise AssertionError("store queried without privilege")

        installer = TrustStoreInstaller([ExplodingStore()], privilege_check=lambda: False)
        with pytest.raises(InsufficientPrivilegeError):
            installer.install(cert_file)

    def test_missing_certificate(self, tmp_path: Path) -> None:
        installer = TrustStoreInstaller([InMemoryTrustStore()], privilege_check=lambda: True)
        with pytest.raises(InvalidCertificateError):
            installer.install(tmp_path / "nope.cer")


class RecordingRunner:
    def __init__(self, stdout: str = "", returncode: int = 0) -> None:
        self.scripts = []
        self.stdout = stdout
        self.returncode = returncode

    def __call__(self, script: str) -> PowerShellResult:
        self.scripts.append(script)
        return PowerShellResult(self.returncode, self.stdout, "")


class TestWindowsTrustStore:
    """Test cases for the PowerShell-backed store."""

    def test_contains(self) -> None:
        runner = RecordingRunner("true")
        store = WindowsTrustStore("Root", runner=runner)
        assert store.contains("ab cd")
        assert r"Cert:\LocalMachine\Root\ABCD" in runner.scripts[0]

    def test_add_imports_certificate(self) -> None:
        runner = RecordingRunner()
        store = WindowsTrustStore("TrustedPublisher", location="CurrentUser", runner=runner)
        store.add(make_certificate())
        assert "Import-Certificate" in runner.scripts[0]
        assert r"Cert:\CurrentUser\TrustedPublisher" in runner.scripts[0]

    def test_thumbprints(self) -> None:
        cert = make_certificate()
        runner = RecordingRunner(f'"{thumbprint(cert).lower()}"')
        assert WindowsTrustStore("Root", runner=runner).thumbprints() == {thumbprint(cert)}

    def test_unreadable_output(self) -> None:
        store = WindowsTrustStore("Root", runner=RecordingRunner("WARNING: module loaded\ntrue"))
        with pytest.raises(TrustStoreError, match=r"Cert:\\LocalMachine\\Root"):
            store.contains("ab" * 20)
        with pytest.raises(TrustStoreError, match="Unreadable"):
            store.thumbprints()

    def test_installer_reports_unreadable_output(self, cert_file: Path) -> None:
        runner = RecordingRunner("WARNING: module loaded\ntrue")
        installer = TrustStoreInstaller(
            [WindowsTrustStore("Root", runner=runner)], privilege_check=lambda: True
        )
        with pytest.raises(TrustStoreError):
            installer.install(cert_file)
        assert not any("Import-Certificate" in s for s in runner.scripts)

    def test_timeout(self) -> None:
        def run(script: str) -> PowerShellResult:
            raise ServiceTimeoutError("PowerShell did not respond within 5 seconds", timeout=5)

        with pytest.raises(TrustStoreError, match="did not respond"):
            WindowsTrustStore("Root", runner=run).contains("ab" * 20)
