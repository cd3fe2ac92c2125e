# SPDX-License-Identifier: MPL-2.0
"""Shared fixtures: throwaway certificates and in-process service fakes."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from authsign.config import PackagingOptions
from authsign.core.models import SessionStatus, SignatureInfo, SignatureStatus, SigningIdentity


def make_certificate(
    common_name: str = "Dev Cert",
    not_after: Optional[datetime] = None,
    code_signing: bool = True,
) -> x509.Certificate:
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    not_after = not_after or datetime.now(timezone.utc) + timedelta(days=365)
    builder = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_after - timedelta(days=730))
        .not_valid_after(not_after)
    )
    if code_signing:
        builder = builder.add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CODE_SIGNING]), critical=False
        )
    return builder.sign(key, hashes.SHA256())


def write_certificate(path: Path, certificate: x509.Certificate, pem: bool = False) -> Path:
    encoding = serialization.Encoding.PEM if pem else serialization.Encoding.DER
    path.write_bytes(certificate.public_bytes(encoding))
    return path


def make_identity(subject: str = "CN=Dev Cert", days: int = 365) -> SigningIdentity:
    return SigningIdentity(
        thumbprint="AB" * 20,
        subject=subject,
        not_after=datetime.now(timezone.utc) + timedelta(days=days),
    )


class FakeSigningService:
    """Records calls; files it has signed verify as ``Valid``."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.signed: set = set()
        self.fail_with: Optional[Exception] = None
        self.verify_status: Optional[SignatureStatus] = None

    def sign(self, path, identity, hash_algorithm="SHA256", timestamp_url=None):
        self.calls.append((Path(path), identity, hash_algorithm, timestamp_url))
        if self.fail_with is not None:
            raise self.fail_with
        self.signed.add(Path(path))
        return SignatureStatus.VALID

    def verify(self, path):
        path = Path(path)
        if self.verify_status is not None:
            status = self.verify_status
        else:
            status = SignatureStatus.VALID if path in self.signed else SignatureStatus.NOT_SIGNED
        return SignatureInfo(
            path=path,
            status=status,
            status_message="" if status == SignatureStatus.VALID else f"status {status.value}",
            signer_subject="CN=Dev Cert" if path in self.signed else None,
        )


class FakePackagingService:
    """Writes a stub executable, or raises ``fail_with``."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None

    def package(self, script_path, output_path, options: Optional[PackagingOptions] = None):
        self.calls.append((Path(script_path), Path(output_path), options))
        if self.fail_with is not None:
            raise self.fail_with
        Path(output_path).write_bytes(b"MZ")
        return Path(output_path)


class FakeSessionManager:
    def __init__(self, status: SessionStatus = SessionStatus.STARTED) -> None:
        self.status = status
        self.calls = 0

    def ensure_session(self) -> SessionStatus:
        self.calls += 1
        return self.status


@pytest.fixture
def signing_service() -> FakeSigningService:
    return FakeSigningService()


@pytest.fixture
def packaging_service() -> FakePackagingService:
    return FakePackagingService()


@pytest.fixture
def session_manager() -> FakeSessionManager:
    return FakeSessionManager()


@pytest.fixture
def script_file(tmp_path: Path) -> Path:
    path = tmp_path / "report.ps1"
    path.write_text("Write-Output 'report'\n", encoding="utf-8")
    return path


@pytest.fixture
def identity() -> SigningIdentity:
    return make_identity()


@pytest.fixture
def expired_identity() -> SigningIdentity:
    return make_identity(subject="CN=Old Cert", days=-1)
