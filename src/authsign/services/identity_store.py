# SPDX-License-Identifier: MPL-2.0
"""Enumeration of available code-signing identities.

Identities are re-read from the underlying store on every call; nothing is
cached between refreshes.  Expired identities are listed and flagged rather
than hidden.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from authsign.core.crypto import identity_from_certificate, load_certificate, normalize_thumbprint
from authsign.core.exceptions import ServiceTimeoutError, SigningServiceFailure
from authsign.core.models import SigningIdentity
from authsign.services.powershell import (
    DEFAULT_TIMEOUT,
    PowerShellNotFoundError,
    PowerShellOutputError,
    PowerShellRunner,
    quote,
)

logger = logging.getLogger(__name__)

_LIST_SCRIPT = r"""
@(Get-ChildItem -Path {store} -CodeSigningCert | Where-Object {{ $_.HasPrivateKey }} | ForEach-Object {{
    [pscustomobject]@{{
        thumbprint = $_.Thumbprint
        subject = $_.Subject
        not_after = $_.NotAfter.ToUniversalTime().ToString('o')
    }}
}}) | ConvertTo-Json -Compress
"""


def find_identity(
    identities: Iterable[SigningIdentity], thumbprint: str
) -> Optional[SigningIdentity]:
    """Find an identity by thumbprint, ignoring case and separators."""
    wanted = normalize_thumbprint(thumbprint)
    for identity in identities:
        if normalize_thumbprint(identity.thumbprint) == wanted:
            return identity
    return None


def _parse_timestamp(value: str) -> datetime:
    # .NET round-trip format carries 7 fractional digits
    head, _, frac = value.rstrip("Z").partition(".")
    parsed = datetime.fromisoformat(head)
    if frac:
        digits = "".join(ch for ch in frac if ch.isdigit())[:6]
        parsed = parsed.replace(microsecond=int(digits.ljust(6, "0")))
    return parsed.replace(tzinfo=timezone.utc)


def _identity_from_entry(entry: Any) -> SigningIdentity:
    try:
        return SigningIdentity(
            thumbprint=entry["thumbprint"],
            subject=entry["subject"],
            not_after=_parse_timestamp(entry["not_after"]),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SigningServiceFailure(
            f"Malformed certificate entry: {entry!r}", details={"error": str(e)}
        ) from e


class PowerShellIdentityStore:
    """Lists code-signing certificates from the Windows certificate store."""

    def __init__(
        self,
        store: str = r"Cert:\CurrentUser\My",
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        runner: Optional[PowerShellRunner] = None,
    ) -> None:
        self.store = store
        self.run = runner or PowerShellRunner(timeout=timeout)

    def list_identities(self) -> List[SigningIdentity]:
        try:
            result = self.run(_LIST_SCRIPT.format(store=quote(self.store)))
        except (PowerShellNotFoundError, ServiceTimeoutError) as e:
            raise SigningServiceFailure(e.message, details=e.details) from e
        if not result.ok:
            raise SigningServiceFailure(f"Could not list certificates: {result.error_text()}")
        try:
            data = result.json() or []
        except PowerShellOutputError as e:
            raise SigningServiceFailure(e.message, details=e.details) from e
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise SigningServiceFailure(f"Unexpected certificate listing: {data!r}")
        identities = [_identity_from_entry(entry) for entry in data]
        logger.debug("Found %d code-signing identities in %s", len(identities), self.store)
        return identities


class CertificateIdentityStore:
    """Identities described by certificate files on disk.

    Certificates without the code-signing extended key usage are skipped.
    """

    def __init__(self, paths: Iterable[Union[str, Path]]) -> None:
        self.paths = [Path(p) for p in paths]

    def list_identities(self) -> List[SigningIdentity]:
        identities = []
        for path in self.paths:
            try:
                identity = identity_from_certificate(load_certificate(path))
            except (OSError, ValueError) as e:
                logger.warning("Skipping unreadable certificate %s: %s", path, e)
                continue
            if not identity.code_signing:
                logger.info("Skipping %s: not a code-signing certificate", path)
                continue
            identities.append(identity)
        return identities
