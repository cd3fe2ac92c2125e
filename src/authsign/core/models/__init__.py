# SPDX-License-Identifier: MPL-2.0
"""Data models for authsign."""
import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from authsign.core.exceptions import ErrorKind


class ArtifactKind(str, Enum):
    """Classification of the selected file."""

    SCRIPT_SOURCE = "script_source"
    EXECUTABLE = "executable"
    UNRECOGNIZED = "unrecognized"
    NONE = "none"


@dataclass(frozen=True)
class ArtifactReference:
    """The file currently targeted for signing or conversion.

    ``exists`` is looked up on every access; it is never cached.
    """

    path: Optional[Path]
    kind: ArtifactKind

    @classmethod
    def none(cls) -> "ArtifactReference":
        """Sentinel for "nothing selected yet"."""
        return cls(path=None, kind=ArtifactKind.NONE)

    @property
    def exists(self) -> bool:
        return self.path is not None and self.path.is_file()

    @property
    def is_selected(self) -> bool:
        return self.path is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path) if self.path else None,
            "kind": self.kind.value,
            "exists": self.exists,
        }


@dataclass(frozen=True)
class SigningIdentity:
    """A code-signing certificate with an accessible private key."""

    thumbprint: str
    subject: str
    not_after: datetime
    code_signing: bool = True

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Whether the identity has not yet expired."""
        now = now or datetime.now(timezone.utc)
        not_after = self.not_after
        if not_after.tzinfo is None:
            not_after = not_after.replace(tzinfo=timezone.utc)
        return not_after > now

    @property
    def expired(self) -> bool:
        return not self.is_valid()

    @property
    def display_name(self) -> str:
        label = f"{self.subject} ({self.thumbprint[:8]}, expires {self.not_after:%Y-%m-%d})"
        if self.expired:
            label += " [EXPIRED]"
        return label

    def to_dict(self) -> Dict[str, Any]:
        return {
            "thumbprint": self.thumbprint,
            "subject": self.subject,
            "not_after": self.not_after.isoformat(),
            "expired": self.expired,
        }


@dataclass(frozen=True)
class WorkflowPermissions:
    """Which of the four workflow operations are currently allowed."""

    can_sign_script: bool
    can_convert_to_executable: bool
    can_sign_executable: bool
    can_manage_cloud_session: bool = True

    def to_dict(self) -> Dict[str, bool]:
        return {
            "can_sign_script": self.can_sign_script,
            "can_convert_to_executable": self.can_convert_to_executable,
            "can_sign_executable": self.can_sign_executable,
            "can_manage_cloud_session": self.can_manage_cloud_session,
        }


class Operation(str, Enum):
    """Workflow operations."""

    SIGN_SCRIPT = "sign_script"
    CONVERT_TO_EXECUTABLE = "convert_to_executable"
    SIGN_EXECUTABLE = "sign_executable"
    MANAGE_CLOUD_SESSION = "manage_cloud_session"


@dataclass
class WorkflowState:
    """Explicit state shared between the selector and the controller."""

    artifact: ArtifactReference = field(default_factory=ArtifactReference.none)
    identity: Optional[SigningIdentity] = None
    timestamp_enabled: bool = True
    timestamp_url: Optional[str] = None


class SignatureStatus(str, Enum):
    """Authenticode signature status names as reported by Windows."""

    VALID = "Valid"
    NOT_SIGNED = "NotSigned"
    HASH_MISMATCH = "HashMismatch"
    NOT_TRUSTED = "NotTrusted"
    NOT_SUPPORTED_FILE_FORMAT = "NotSupportedFileFormat"
    INCOMPATIBLE = "Incompatible"
    UNKNOWN_ERROR = "UnknownError"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SignatureStatus":
        """Parse a status name, case-insensitively."""
        for member in cls:
            if member.value.lower() == str(value or "").lower():
                return member
        return cls.UNKNOWN_ERROR


@dataclass
class SignatureInfo:
    """Signature state read back from a file."""

    path: Path
    status: SignatureStatus
    status_message: str = ""
    signer_subject: Optional[str] = None
    signer_thumbprint: Optional[str] = None
    timestamper_subject: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status == SignatureStatus.VALID

    @property
    def is_timestamped(self) -> bool:
        return bool(self.timestamper_subject)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": str(self.path),
            "status": self.status.value,
            "status_message": self.status_message,
            "signer_subject": self.signer_subject,
            "signer_thumbprint": self.signer_thumbprint,
            "timestamper_subject": self.timestamper_subject,
        }


class InstallResult(str, Enum):
    """Outcome of a trust store installation."""

    INSTALLED = "installed"
    ALREADY_TRUSTED = "already_trusted"


class SessionStatus(str, Enum):
    """Outcome of a cloud session check."""

    ALREADY_RUNNING = "already_running"
    STARTED = "started"


@dataclass
class OperationResult:
    """Structured result of a workflow operation."""

    ok: bool
    operation: Operation
    message: str = ""
    kind: Optional[ErrorKind] = None
    artifact: Optional[ArtifactReference] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary."""
        return {
            "ok": self.ok,
            "operation": self.operation.value,
            "kind": self.kind.value if self.kind else None,
            "message": self.message,
            "artifact": self.artifact.to_dict() if self.artifact else None,
            "details": self.details,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert the result to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)


def absolute_path(path: Union[str, "os.PathLike[str]"]) -> Path:
    """Make ``path`` absolute without resolving symlinks."""
    return Path(os.path.abspath(os.path.expanduser(os.fspath(path))))


__all__ = [
    "ArtifactKind",
    "ArtifactReference",
    "InstallResult",
    "Operation",
    "OperationResult",
    "SessionStatus",
    "SignatureInfo",
    "SignatureStatus",
    "SigningIdentity",
    "WorkflowPermissions",
    "WorkflowState",
    "absolute_path",
]
