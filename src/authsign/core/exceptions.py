# SPDX-License-Identifier: MPL-2.0
"""Custom exceptions for authsign.

Every exception carries an :class:`ErrorKind` so that failures can be reported
to callers as structured ``(kind, message)`` results instead of tracebacks.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Kinds of failure a workflow operation can report."""

    NO_ARTIFACT_SELECTED = "NoArtifactSelected"
    ARTIFACT_TYPE_MISMATCH = "ArtifactTypeMismatch"
    NO_IDENTITY_SELECTED = "NoIdentitySelected"
    IDENTITY_EXPIRED = "IdentityExpired"
    SIGNING_SERVICE_FAILURE = "SigningServiceFailure"
    PACKAGING_SERVICE_FAILURE = "PackagingServiceFailure"
    PACKAGING_BACKEND_MISSING = "PackagingBackendMissing"
    INVALID_SCRIPT = "InvalidScript"
    OUTPUT_COLLISION = "OutputCollision"
    INSUFFICIENT_PRIVILEGE = "InsufficientPrivilege"
    CLOUD_SESSION_FAILURE = "CloudSessionFailure"
    SERVICE_UNRESPONSIVE = "ServiceUnresponsive"
    CONFIGURATION_ERROR = "ConfigurationError"
    INVALID_CERTIFICATE = "InvalidCertificate"
    TRUST_STORE_FAILURE = "TrustStoreFailure"


class AuthsignError(Exception):
    """Base exception for all authsign errors."""

    kind: ErrorKind = ErrorKind.SIGNING_SERVICE_FAILURE

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class PreconditionError(AuthsignError):
    """Raised when an operation is invoked outside its permission."""


class NoArtifactSelectedError(PreconditionError):
    """Raised when no existing file is currently selected."""

    kind = ErrorKind.NO_ARTIFACT_SELECTED


class ArtifactTypeMismatchError(PreconditionError):
    """Raised when the selected file has the wrong kind for the operation."""

    kind = ErrorKind.ARTIFACT_TYPE_MISMATCH


class NoIdentitySelectedError(PreconditionError):
    """Raised when signing is requested without a signing identity."""

    kind = ErrorKind.NO_IDENTITY_SELECTED


class IdentityExpiredError(AuthsignError):
    """Raised when the signing identity is past its expiration."""

    kind = ErrorKind.IDENTITY_EXPIRED


class SigningServiceFailure(AuthsignError):
    """Raised when applying or verifying a signature fails."""

    kind = ErrorKind.SIGNING_SERVICE_FAILURE


class PackagingServiceFailure(AuthsignError):
    """Raised when converting a script to an executable fails."""

    kind = ErrorKind.PACKAGING_SERVICE_FAILURE


class PackagingBackendMissingError(PackagingServiceFailure):
    """Raised when the script-to-executable converter is not installed."""

    kind = ErrorKind.PACKAGING_BACKEND_MISSING


class InvalidScriptError(PackagingServiceFailure):
    """Raised when the script does not parse."""

    kind = ErrorKind.INVALID_SCRIPT


class OutputCollisionError(PackagingServiceFailure):
    """Raised when the conversion target already exists."""

    kind = ErrorKind.OUTPUT_COLLISION


class InsufficientPrivilegeError(AuthsignError):
    """Raised when a machine-wide store is modified without elevation."""

    kind = ErrorKind.INSUFFICIENT_PRIVILEGE


class CloudSessionFailure(AuthsignError):
    """Raised when the cloud signing companion cannot be started."""

    kind = ErrorKind.CLOUD_SESSION_FAILURE


class ServiceTimeoutError(AuthsignError):
    """Raised when an external tool does not answer in time."""

    kind = ErrorKind.SERVICE_UNRESPONSIVE

    def __init__(
        self,
        message: str = "External service did not respond in time",
        timeout: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize the timeout exception.

        Args:
            message: Error message
            timeout: Number of seconds waited before giving up
            details: Optional dictionary with additional error details
        """
        super().__init__(message, details)
        self.timeout = timeout


class ConfigurationError(AuthsignError):
    """Raised when configuration is invalid or missing."""

    kind = ErrorKind.CONFIGURATION_ERROR


class InvalidCertificateError(AuthsignError):
    """Raised when a certificate file is missing or cannot be parsed."""

    kind = ErrorKind.INVALID_CERTIFICATE


class TrustStoreError(AuthsignError):
    """Raised when a trust store cannot be read or updated."""

    kind = ErrorKind.TRUST_STORE_FAILURE
