# SPDX-License-Identifier: MPL-2.0
"""Tests for identity enumeration."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from authsign.core.exceptions import ServiceTimeoutError, SigningServiceFailure
from authsign.services.identity_store import (
    CertificateIdentityStore,
    PowerShellIdentityStore,
    find_identity,
)
from authsign.services.powershell import PowerShellResult
from conftest import make_certificate, make_identity, write_certificate


def fixed_runner(stdout: str, returncode: int = 0, stderr: str = ""):
    def run(script: str) -> PowerShellResult:
        assert "-CodeSigningCert" in script
        return PowerShellResult(returncode, stdout, stderr)

    return run


class TestPowerShellIdentityStore:
    """Test cases for PowerShellIdentityStore."""

    def test_parses_list(self) -> None:
        output = json.dumps([
            {"thumbprint": "A" * 40, "subject": "CN=Dev Cert", "not_after": "2099-01-01T00:00:00.0000000Z"},
            {"thumbprint": "B" * 40, "subject": "CN=Old", "not_after": "2001-06-30T12:30:00.1234567Z"},
        ])
        identities = PowerShellIdentityStore(runner=fixed_runner(output)).list_identities()
        assert [i.subject for i in identities] == ["CN=Dev Cert", "CN=Old"]
        assert not identities[0].expired
        assert identities[1].expired
        assert identities[1].not_after == datetime(2001, 6, 30, 12, 30, 0, 123456, tzinfo=timezone.utc)

    def test_single_entry(self) -> None:
        output = json.dumps(
            {"thumbprint": "A" * 40, "subject": "CN=Dev", "not_after": "2099-01-01T00:00:00Z"}
        )
        assert len(PowerShellIdentityStore(runner=fixed_runner(output)).list_identities()) == 1

    def test_empty_store(self) -> None:
        assert PowerShellIdentityStore(runner=fixed_runner("")).list_identities() == []

    def test_failure(self) -> None:
        store = PowerShellIdentityStore(runner=fixed_runner("", returncode=1, stderr="boom"))
        with pytest.raises(SigningServiceFailure, match="boom"):
            store.list_identities()

    def test_unreadable_output(self) -> None:
        store = PowerShellIdentityStore(runner=fixed_runner("WARNING: PKI module loaded\n[]"))
        with pytest.raises(SigningServiceFailure, match="Unreadable"):
            store.list_identities()

    @pytest.mark.parametrize(
        "entry",
        [
            {"thumbprint": "A" * 40, "subject": "CN=Dev"},
            {"thumbprint": "A" * 40, "subject": "CN=Dev", "not_after": "next tuesday"},
            {"thumbprint": "A" * 40, "subject": "CN=Dev", "not_after": None},
            "A" * 40,
        ],
    )
    def test_malformed_entry(self, entry) -> None:
        store = PowerShellIdentityStore(runner=fixed_runner(json.dumps([entry])))
        with pytest.raises(SigningServiceFailure, match="Malformed certificate entry"):
            store.list_identities()

    def test_unexpected_listing(self) -> None:
        with pytest.raises(SigningServiceFailure, match="Unexpected certificate listing"):
            PowerShellIdentityStore(runner=fixed_runner("42")).list_identities()

    def test_timeout(self) -> None:
        def run(script: str) -> PowerShellResult:
            raise ServiceTimeoutError("PowerShell did not respond within 5 seconds", timeout=5)

        with pytest.raises(SigningServiceFailure, match="did not respond"):
            PowerShellIdentityStore(runner=run).list_identities()


class TestCertificateIdentityStore:
    """Test cases for CertificateIdentityStore."""

    def test_filters_non_code_signing(self, tmp_path) -> None:
        good = write_certificate(tmp_path / "good.cer", make_certificate("Good"))
        tls = write_certificate(tmp_path / "tls.cer", make_certificate("TLS", code_signing=False))
        identities = CertificateIdentityStore([good, tls]).list_identities()
        assert [i.subject for i in identities] == ["CN=Good"]

    def test_keeps_expired(self, tmp_path) -> None:
        old = make_certificate("Old", not_after=datetime.now(timezone.utc) - timedelta(days=30))
        path = write_certificate(tmp_path / "old.pem", old, pem=True)
        identities = CertificateIdentityStore([path]).list_identities()
        assert len(identities) == 1
        assert identities[0].expired

    def test_skips_unreadable(self, tmp_path) -> None:
        bad = tmp_path / "bad.cer"
        bad.write_bytes(b"junk")
        assert CertificateIdentityStore([bad, tmp_path / "missing.cer"]).list_identities() == []

    def test_refresh_rereads(self, tmp_path) -> None:
        path = tmp_path / "cert.cer"
        write_certificate(path, make_certificate("First"))
        store = CertificateIdentityStore([path])
        assert store.list_identities()[0].subject == "CN=First"
        write_certificate(path, make_certificate("Second"))
        assert store.list_identities()[0].subject == "CN=Second"


def test_find_identity() -> None:
    identity = make_identity()
    assert find_identity([identity], "ab" * 20) is identity
    assert find_identity([identity], "ab:" * 20) is identity
    assert find_identity([identity], "cd" * 20) is None
