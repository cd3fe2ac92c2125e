# SPDX-License-Identifier: MPL-2.0
"""Idempotent installation of a public certificate into trust stores.

Machine-wide stores need an elevated process.  Privilege is checked before
anything else, so an unprivileged run never touches a store.  Installing the
same certificate again is a no-op reported as ``already_trusted``.
"""

import ctypes
import logging
import os
import sys
import tempfile
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol, Sequence, Set, Union

from cryptography import x509

from authsign.core.crypto import der_bytes, load_certificate, normalize_thumbprint, thumbprint
from authsign.core.exceptions import (
    InsufficientPrivilegeError,
    InvalidCertificateError,
    ServiceTimeoutError,
    TrustStoreError,
)
from authsign.core.models import InstallResult
from authsign.services.powershell import (
    DEFAULT_TIMEOUT,
    PowerShellNotFoundError,
    PowerShellOutputError,
    PowerShellResult,
    PowerShellRunner,
    quote,
)

logger = logging.getLogger(__name__)

# A self-signed publisher certificate must be trusted as a root and as a
# publisher for Authenticode to report "Valid".
DEFAULT_STORES = ("Root", "TrustedPublisher")


class TrustStore(Protocol):
    """A certificate trust list addressed by thumbprint."""

    name: str

    def contains(self, thumbprint: str) -> bool: ...

    def add(self, certificate: x509.Certificate) -> None: ...

    def thumbprints(self) -> Set[str]: ...


def is_elevated() -> bool:
    """Whether the current process may modify machine-wide stores."""
    if sys.platform == "win32":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


class InMemoryTrustStore:
    """Trust store held in memory."""

    def __init__(self, name: str = "Root") -> None:
        self.name = name
        self._certificates: Dict[str, x509.Certificate] = {}

    def contains(self, thumbprint: str) -> bool:
        return normalize_thumbprint(thumbprint) in self._certificates

    def add(self, certificate: x509.Certificate) -> None:
        self._certificates[thumbprint(certificate)] = certificate

    def thumbprints(self) -> Set[str]:
        return set(self._certificates)


class WindowsTrustStore:
    """A ``Cert:\\<location>\\<name>`` store driven through PowerShell."""

    def __init__(
        self,
        name: str,
        location: str = "LocalMachine",
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        runner: Optional[PowerShellRunner] = None,
    ) -> None:
        self.name = name
        self.location = location
        self.run = runner or PowerShellRunner(timeout=timeout)

    @property
    def drive_path(self) -> str:
        return f"Cert:\\{self.location}\\{self.name}"

    def _call(self, script: str) -> PowerShellResult:
        try:
            result = self.run(script)
        except (PowerShellNotFoundError, ServiceTimeoutError) as e:
            raise TrustStoreError(e.message, details=e.details) from e
        if not result.ok:
            raise TrustStoreError(f"{self.drive_path}: {result.error_text()}")
        return result

    def _query(self, script: str):
        result = self._call(script)
        try:
            return result.json()
        except PowerShellOutputError as e:
            raise TrustStoreError(f"{self.drive_path}: {e.message}", details=e.details) from e

    def contains(self, thumbprint: str) -> bool:
        path = f"{self.drive_path}\\{normalize_thumbprint(thumbprint)}"
        return self._query(f"Test-Path -LiteralPath {quote(path)} | ConvertTo-Json") is True

    def add(self, certificate: x509.Certificate) -> None:
        fd, name = tempfile.mkstemp(suffix=".cer")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(der_bytes(certificate))
            self._call(
                f"Import-Certificate -FilePath {quote(name)} "
                f"-CertStoreLocation {quote(self.drive_path)} -ErrorAction Stop | Out-Null"
            )
        finally:
            os.unlink(name)

    def thumbprints(self) -> Set[str]:
        data = self._query(
            f"@(Get-ChildItem -Path {quote(self.drive_path)} | "
            "ForEach-Object { $_.Thumbprint }) | ConvertTo-Json -Compress"
        ) or []
        if isinstance(data, str):
            data = [data]
        return {normalize_thumbprint(t) for t in data}


class TrustStoreInstaller:
    """Installs a certificate into one or more trust stores."""

    def __init__(
        self,
        stores: Sequence[TrustStore],
        privilege_check: Callable[[], bool] = is_elevated,
    ) -> None:
        self.stores = list(stores)
        self.privilege_check = privilege_check

    def install(self, certificate_path: Union[str, Path]) -> InstallResult:
        """Install the certificate unless every store already trusts it.

        Raises:
            InsufficientPrivilegeError: if the process is not elevated
            InvalidCertificateError: if the file cannot be read as a certificate
            TrustStoreError: if a store lookup or update fails
        """
        if not self.privilege_check():
            raise InsufficientPrivilegeError(
                "Administrator rights are required to modify the machine trust stores"
            )
        try:
            certificate = load_certificate(certificate_path)
        except (OSError, ValueError) as e:
            raise InvalidCertificateError(f"Cannot read certificate {certificate_path}: {e}") from e

        fingerprint = thumbprint(certificate)
        result = InstallResult.ALREADY_TRUSTED
        for store in self.stores:
            if store.contains(fingerprint):
                logger.info("%s already trusted in %s", fingerprint, store.name)
                continue
            store.add(certificate)
            logger.info("Added %s to %s", fingerprint, store.name)
            result = InstallResult.INSTALLED
        return result


def windows_installer(
    store_names: Sequence[str] = DEFAULT_STORES,
    location: str = "LocalMachine",
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> TrustStoreInstaller:
    return TrustStoreInstaller([WindowsTrustStore(n, location, timeout=timeout) for n in store_names])
