# SPDX-License-Identifier: MPL-2.0
"""External collaborators of the signing workflow.

The workflow controller only depends on the protocols below; the concrete
classes wrap Windows PowerShell, PS2EXE and the certificate stores.
"""

from pathlib import Path
from typing import List, Optional, Protocol

from authsign.config import PackagingOptions
from authsign.core.models import SessionStatus, SignatureInfo, SignatureStatus, SigningIdentity


class SigningService(Protocol):
    def sign(
        self,
        path: Path,
        identity: SigningIdentity,
        hash_algorithm: str = "SHA256",
        timestamp_url: Optional[str] = None,
    ) -> SignatureStatus: ...

    def verify(self, path: Path) -> SignatureInfo: ...


class PackagingService(Protocol):
    def package(
        self,
        script_path: Path,
        output_path: Path,
        options: Optional[PackagingOptions] = None,
    ) -> Path: ...


class IdentityStore(Protocol):
    def list_identities(self) -> List[SigningIdentity]: ...


class SessionManager(Protocol):
    def ensure_session(self) -> SessionStatus: ...


from authsign.services.identity_store import (  # noqa: E402
    CertificateIdentityStore,
    PowerShellIdentityStore,
    find_identity,
)
from authsign.services.packaging import PS2EXEPackagingService, default_output_path  # noqa: E402
from authsign.services.session import CloudSessionManager  # noqa: E402
from authsign.services.signing import HASH_ALGORITHM, PowerShellSigningService  # noqa: E402
from authsign.services.trust_store import (  # noqa: E402
    InMemoryTrustStore,
    TrustStore,
    TrustStoreInstaller,
    WindowsTrustStore,
)

__all__ = [
    "CertificateIdentityStore",
    "CloudSessionManager",
    "HASH_ALGORITHM",
    "IdentityStore",
    "InMemoryTrustStore",
    "PS2EXEPackagingService",
    "PackagingService",
    "PowerShellIdentityStore",
    "PowerShellSigningService",
    "SessionManager",
    "SigningService",
    "TrustStore",
    "TrustStoreInstaller",
    "WindowsTrustStore",
    "default_output_path",
    "find_identity",
]
