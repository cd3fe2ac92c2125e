# SPDX-License-Identifier: MPL-2.0
"""Selection and classification of the file being signed or converted."""

import logging
import os
from typing import Dict, Optional, Union

from authsign.core.models import ArtifactKind, ArtifactReference, WorkflowState, absolute_path

logger = logging.getLogger(__name__)

EXTENSION_KINDS: Dict[str, ArtifactKind] = {
    ".ps1": ArtifactKind.SCRIPT_SOURCE,
    ".psm1": ArtifactKind.SCRIPT_SOURCE,
    ".exe": ArtifactKind.EXECUTABLE,
}


def classify_path(path: Union[str, "os.PathLike[str]"]) -> ArtifactKind:
    """Classify a path by its extension alone (case-insensitive)."""
    _, ext = os.path.splitext(os.fspath(path))
    return EXTENSION_KINDS.get(ext.lower(), ArtifactKind.UNRECOGNIZED)


class ArtifactSelector:
    """Holds the single currently selected artifact.

    The selector never raises for bad input: a missing file is still selected,
    but reported as ``unrecognized`` with ``exists == False``.
    """

    def __init__(self, state: Optional[WorkflowState] = None) -> None:
        self.state = state or WorkflowState()

    def select_path(self, path: Union[str, "os.PathLike[str]"]) -> ArtifactReference:
        full_path = absolute_path(path)
        if full_path.is_file():
            kind = classify_path(full_path)
        else:
            logger.debug("Selected path %s does not exist", full_path)
            kind = ArtifactKind.UNRECOGNIZED
        artifact = ArtifactReference(path=full_path, kind=kind)
        self.state.artifact = artifact
        return artifact

    def current(self) -> ArtifactReference:
        return self.state.artifact

    def clear(self) -> None:
        self.state.artifact = ArtifactReference.none()
