# SPDX-License-Identifier: MPL-2.0
"""Signing workflow controller.

Decides which of the four workflow operations are allowed for the current
artifact and identity, and runs them through the external services.  Every
operation returns an :class:`OperationResult`; errors never escape.
"""

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from authsign.config import PackagingOptions
from authsign.core.artifacts import ArtifactSelector
from authsign.core.exceptions import (
    ArtifactTypeMismatchError,
    AuthsignError,
    CloudSessionFailure,
    IdentityExpiredError,
    NoArtifactSelectedError,
    NoIdentitySelectedError,
    SigningServiceFailure,
)
from authsign.core.models import (
    ArtifactKind,
    ArtifactReference,
    Operation,
    OperationResult,
    SigningIdentity,
    WorkflowPermissions,
    WorkflowState,
    absolute_path,
)
from authsign.services import PackagingService, SessionManager, SigningService
from authsign.services.packaging import default_output_path
from authsign.services.signing import HASH_ALGORITHM

logger = logging.getLogger(__name__)


def compute_permissions(
    artifact: ArtifactReference, identity: Optional[SigningIdentity]
) -> WorkflowPermissions:
    """Derive the permitted operations from the artifact and identity alone."""
    has_file = artifact.exists
    has_identity = identity is not None
    is_script = has_file and artifact.kind == ArtifactKind.SCRIPT_SOURCE
    is_executable = has_file and artifact.kind == ArtifactKind.EXECUTABLE
    return WorkflowPermissions(
        can_sign_script=is_script and has_identity,
        can_convert_to_executable=is_script,
        can_sign_executable=is_executable and has_identity,
        can_manage_cloud_session=True,
    )


class _PathLocks:
    """One lock per absolute path."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, path: Path) -> Iterator[None]:
        key = os.path.normcase(str(path))
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield


class SigningWorkflowController:
    """Runs signing, conversion and session operations for one workflow.

    Args:
        signing_service: Applies and verifies Authenticode signatures
        packaging_service: Converts scripts to executables
        session_manager: Keeps the cloud signing companion running
        state: Shared workflow state, a fresh one is created if omitted
    """

    def __init__(
        self,
        signing_service: SigningService,
        packaging_service: PackagingService,
        session_manager: Optional[SessionManager] = None,
        state: Optional[WorkflowState] = None,
    ) -> None:
        self.signing_service = signing_service
        self.packaging_service = packaging_service
        self.session_manager = session_manager
        self.state = state or WorkflowState()
        self.selector = ArtifactSelector(self.state)
        self._locks = _PathLocks()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def select_path(self, path: Union[str, "os.PathLike[str]"]) -> ArtifactReference:
        return self.selector.select_path(path)

    def current(self) -> ArtifactReference:
        return self.selector.current()

    def select_identity(self, identity: Optional[SigningIdentity]) -> None:
        self.state.identity = identity

    def set_timestamping(self, enabled: bool, url: Optional[str] = None) -> None:
        self.state.timestamp_enabled = enabled
        if url is not None:
            self.state.timestamp_url = url

    def permissions(self) -> WorkflowPermissions:
        return compute_permissions(self.state.artifact, self.state.identity)

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------
    def _require_artifact(self, kind: ArtifactKind) -> Path:
        artifact = self.state.artifact
        if not artifact.exists:
            if artifact.is_selected:
                raise NoArtifactSelectedError(f"File not found: {artifact.path}")
            raise NoArtifactSelectedError("No file selected")
        if artifact.kind != kind:
            raise ArtifactTypeMismatchError(
                f"{artifact.path.name} is not a {kind.value.replace('_', ' ')}",
                details={"expected": kind.value, "actual": artifact.kind.value},
            )
        return artifact.path

    def _require_identity(self) -> SigningIdentity:
        identity = self.state.identity
        if identity is None:
            raise NoIdentitySelectedError("No signing certificate selected")
        if not identity.is_valid():
            raise IdentityExpiredError(
                f"Certificate {identity.subject} expired on {identity.not_after:%Y-%m-%d}",
                details={"thumbprint": identity.thumbprint},
            )
        return identity

    def _run(self, operation: Operation, action) -> OperationResult:
        try:
            message, details = action()
        except AuthsignError as e:
            logger.error("%s failed (%s): %s", operation.value, e.kind.value, e.message)
            return OperationResult(
                ok=False,
                operation=operation,
                kind=e.kind,
                message=e.message,
                artifact=self.state.artifact,
                details=e.details,
            )
        logger.info("%s: %s", operation.value, message)
        return OperationResult(
            ok=True,
            operation=operation,
            message=message,
            artifact=self.state.artifact,
            details=details,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def _sign(self, kind: ArtifactKind):
        path = self._require_artifact(kind)
        identity = self._require_identity()
        timestamp_url = self.state.timestamp_url if self.state.timestamp_enabled else None
        with self._locks.hold(path):
            self.signing_service.sign(path, identity, HASH_ALGORITHM, timestamp_url)
            info = self.signing_service.verify(path)
        if not info.is_valid:
            raise SigningServiceFailure(
                info.status_message or f"Signature status is {info.status.value}",
                details=info.to_dict(),
            )
        return f"Signed {path.name} as {identity.subject}", info.to_dict()

    def sign_script(self) -> OperationResult:
        return self._run(Operation.SIGN_SCRIPT, lambda: self._sign(ArtifactKind.SCRIPT_SOURCE))

    def sign_executable(self) -> OperationResult:
        return self._run(Operation.SIGN_EXECUTABLE, lambda: self._sign(ArtifactKind.EXECUTABLE))

    def convert_to_executable(self, options: Optional[PackagingOptions] = None) -> OperationResult:
        """Convert the selected script and select the produced executable."""

        def convert():
            script_path = self._require_artifact(ArtifactKind.SCRIPT_SOURCE)
            opts = options or PackagingOptions()
            output_path = absolute_path(opts.output_path or default_output_path(script_path))
            with self._locks.hold(output_path):
                produced = self.packaging_service.package(script_path, output_path, opts)
            self.selector.select_path(produced)
            return f"Created {Path(produced).name}", {
                "script_path": str(script_path),
                "output_path": str(produced),
            }

        return self._run(Operation.CONVERT_TO_EXECUTABLE, convert)

    def manage_cloud_session(self) -> OperationResult:
        def manage():
            if self.session_manager is None:
                raise CloudSessionFailure("No cloud signing companion configured")
            status = self.session_manager.ensure_session()
            return f"Cloud signing session {status.value.replace('_', ' ')}", {
                "status": status.value
            }

        return self._run(Operation.MANAGE_CLOUD_SESSION, manage)
