# SPDX-License-Identifier: MPL-2.0
"""Authenticode signing through ``Set-AuthenticodeSignature``.

The cryptography is done entirely by Windows; this module only builds the
PowerShell calls and interprets their results.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from authsign.core.exceptions import (
    IdentityExpiredError,
    ServiceTimeoutError,
    SigningServiceFailure,
)
from authsign.core.models import SignatureInfo, SignatureStatus, SigningIdentity
from authsign.services.powershell import (
    DEFAULT_TIMEOUT,
    PowerShellNotFoundError,
    PowerShellOutputError,
    PowerShellRunner,
    quote,
)

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "SHA256"
DEFAULT_CERT_STORE = r"Cert:\CurrentUser\My"

_SIGN_TEMPLATE = """
$cert = Get-Item -LiteralPath {cert_path} -ErrorAction Stop
$params = @{{ LiteralPath = {file_path}; Certificate = $cert; HashAlgorithm = {hash_algorithm}; ErrorAction = 'Stop' }}
{timestamp_line}
$s = Set-AuthenticodeSignature @params
[pscustomobject]@{{ status = $s.Status.ToString(); message = $s.StatusMessage }} | ConvertTo-Json -Compress
"""

_VERIFY_TEMPLATE = """
$s = Get-AuthenticodeSignature -LiteralPath {file_path} -ErrorAction Stop
[pscustomobject]@{{
    status = $s.Status.ToString()
    message = $s.StatusMessage
    signer = $s.SignerCertificate.Subject
    thumbprint = $s.SignerCertificate.Thumbprint
    timestamper = $s.TimeStamperCertificate.Subject
}} | ConvertTo-Json -Compress
"""


def _is_expiry_message(message: str) -> bool:
    lowered = message.lower()
    return "expired" in lowered or "not within its validity period" in lowered


class PowerShellSigningService:
    """Signs and verifies files with the Windows Authenticode cmdlets."""

    def __init__(
        self,
        cert_store: str = DEFAULT_CERT_STORE,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        runner: Optional[PowerShellRunner] = None,
    ) -> None:
        self.cert_store = cert_store.rstrip("\\")
        self.run = runner or PowerShellRunner(timeout=timeout)

    def _invoke(self, script: str) -> Dict[str, Any]:
        try:
            result = self.run(script)
        except (PowerShellNotFoundError, ServiceTimeoutError) as e:
            raise SigningServiceFailure(e.message, details=e.details) from e
        if not result.ok:
            message = result.error_text()
            if _is_expiry_message(message):
                raise IdentityExpiredError(message)
            raise SigningServiceFailure(message)
        try:
            data = result.json()
        except PowerShellOutputError as e:
            raise SigningServiceFailure(e.message, details=e.details) from e
        if not isinstance(data, dict):
            raise SigningServiceFailure("Signing command returned no status")
        return data

    def sign(
        self,
        path: Path,
        identity: SigningIdentity,
        hash_algorithm: str = HASH_ALGORITHM,
        timestamp_url: Optional[str] = None,
    ) -> SignatureStatus:
        """Apply an Authenticode signature to ``path``.

        Raises:
            IdentityExpiredError: if Windows rejects the certificate as expired
            SigningServiceFailure: for any other failure
        """
        timestamp_line = (
            f"$params.TimestampServer = {quote(timestamp_url)}" if timestamp_url else ""
        )
        script = _SIGN_TEMPLATE.format(
            cert_path=quote(f"{self.cert_store}\\{identity.thumbprint}"),
            file_path=quote(path),
            hash_algorithm=quote(hash_algorithm),
            timestamp_line=timestamp_line,
        )
        logger.info("Signing %s with %s", path, identity.thumbprint)
        data = self._invoke(script)
        status = SignatureStatus.parse(data.get("status"))
        message = data.get("message") or status.value
        if status != SignatureStatus.VALID:
            if _is_expiry_message(message):
                raise IdentityExpiredError(message, details={"status": status.value})
            raise SigningServiceFailure(message, details={"status": status.value})
        return status

    def verify(self, path: Path) -> SignatureInfo:
        """Read the signature back from ``path``."""
        data = self._invoke(_VERIFY_TEMPLATE.format(file_path=quote(path)))
        return SignatureInfo(
            path=Path(path),
            status=SignatureStatus.parse(data.get("status")),
            status_message=data.get("message") or "",
            signer_subject=data.get("signer"),
            signer_thumbprint=data.get("thumbprint"),
            timestamper_subject=data.get("timestamper"),
        )
