# SPDX-License-Identifier: MPL-2.0
"""
authsign - Authenticode signing workflow for PowerShell scripts and executables.

This package decides which signing and packaging operations are valid for the
selected file and certificate, and delegates the actual work to the Windows
Authenticode cmdlets, the PS2EXE converter and the certificate stores.
"""

import contextlib
from importlib.metadata import version

# Set up version
__version__ = "0.1.0"

with contextlib.suppress(Exception):
    __version__ = version("authsign")


# Core components
from authsign.core import (
    ArtifactSelector,
    SigningWorkflowController,
    classify_path,
    compute_permissions,
)

# Public API
__all__ = [
    "ArtifactSelector",
    "SigningWorkflowController",
    "classify_path",
    "compute_permissions",
    "__version__",
]
