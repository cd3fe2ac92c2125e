# SPDX-License-Identifier: MPL-2.0
"""Core workflow logic for authsign."""
from authsign.core.artifacts import ArtifactSelector, classify_path
from authsign.core.models import (
    ArtifactKind,
    ArtifactReference,
    OperationResult,
    SigningIdentity,
    WorkflowPermissions,
    WorkflowState,
)
from authsign.core.workflow import SigningWorkflowController, compute_permissions

__all__ = [
    "ArtifactKind",
    "ArtifactReference",
    "ArtifactSelector",
    "OperationResult",
    "SigningIdentity",
    "SigningWorkflowController",
    "WorkflowPermissions",
    "WorkflowState",
    "classify_path",
    "compute_permissions",
]
