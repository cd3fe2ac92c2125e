# SPDX-License-Identifier: MPL-2.0
"""X.509 certificate helpers.

authsign never signs anything itself; signatures are applied by the platform
Authenticode API.  This module only reads certificates so that identities and
trust store entries can be described and compared by thumbprint.
"""

from __future__ import annotations

from pathlib import Path
from typing import Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import ExtendedKeyUsageOID

from authsign.core.models import SigningIdentity


def load_certificate(source: Union[str, Path, bytes]) -> x509.Certificate:
    """Load a certificate from a path or raw bytes, PEM or DER encoded.

    Raises:
        ValueError: if the data is not a certificate.
    """
    data = source if isinstance(source, bytes) else Path(source).read_bytes()
    if b"-----BEGIN CERTIFICATE-----" in data:
        return x509.load_pem_x509_certificate(data)
    try:
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise ValueError(f"Not a PEM or DER encoded certificate: {e}") from e


def thumbprint(certificate: x509.Certificate) -> str:
    """Return the Windows-style thumbprint (upper-case SHA-1 hex of the DER)."""
    return certificate.fingerprint(hashes.SHA1()).hex().upper()


def normalize_thumbprint(value: str) -> str:
    """Strip separators and whitespace from a pasted thumbprint."""
    return "".join(ch for ch in value if ch.isalnum()).upper()


def is_code_signing(certificate: x509.Certificate) -> bool:
    """Whether the certificate's extended key usage allows code signing."""
    try:
        eku = certificate.extensions.get_extension_for_class(x509.ExtendedKeyUsage)
    except x509.ExtensionNotFound:
        return False
    return ExtendedKeyUsageOID.CODE_SIGNING in eku.value


def identity_from_certificate(certificate: x509.Certificate) -> SigningIdentity:
    """Describe a certificate as a :class:`SigningIdentity`."""
    return SigningIdentity(
        thumbprint=thumbprint(certificate),
        subject=certificate.subject.rfc4514_string(),
        not_after=certificate.not_valid_after_utc,
        code_signing=is_code_signing(certificate),
    )


def der_bytes(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.DER)


__all__ = [
    "der_bytes",
    "identity_from_certificate",
    "is_code_signing",
    "load_certificate",
    "normalize_thumbprint",
    "thumbprint",
]
