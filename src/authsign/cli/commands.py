# SPDX-License-Identifier: MPL-2.0
"""
Helpers shared by the CLI commands: service construction and output.
"""

import json
import logging
import sys
from typing import Any, Dict, List, Optional, Sequence

import click

from authsign.config import Settings, load_settings
from authsign.core.exceptions import AuthsignError, ConfigurationError
from authsign.core.models import OperationResult, SignatureInfo, SigningIdentity, WorkflowState
from authsign.core.workflow import SigningWorkflowController
from authsign.services import (
    CertificateIdentityStore,
    CloudSessionManager,
    IdentityStore,
    PowerShellIdentityStore,
    PowerShellSigningService,
    PS2EXEPackagingService,
    find_identity,
)

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_settings(config_path: Optional[str], lenient: bool) -> Settings:
    """Load settings or exit with the configuration error."""
    try:
        return load_settings(config_path, lenient=lenient)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


def build_identity_store(settings: Settings, cert_files: Sequence[str] = ()) -> IdentityStore:
    if cert_files:
        return CertificateIdentityStore(cert_files)
    return PowerShellIdentityStore(timeout=settings.service_timeout)


def build_controller(settings: Settings) -> SigningWorkflowController:
    """Wire the Windows services into a controller."""
    session = CloudSessionManager(
        settings.session_process_name,
        executable=settings.session_executable,
        settle_seconds=settings.session_settle_seconds,
    )
    state = WorkflowState(
        timestamp_enabled=settings.timestamp_enabled,
        timestamp_url=settings.timestamp_url,
    )
    return SigningWorkflowController(
        PowerShellSigningService(timeout=settings.service_timeout),
        PS2EXEPackagingService(timeout=settings.service_timeout),
        session,
        state=state,
    )


def list_identities(store: IdentityStore) -> List[SigningIdentity]:
    try:
        return store.list_identities()
    except AuthsignError as e:
        click.echo(f"Error listing certificates: {e.message}", err=True)
        sys.exit(1)


def resolve_identity(
    settings: Settings, thumbprint: Optional[str], cert_files: Sequence[str] = ()
) -> Optional[SigningIdentity]:
    """Look up the identity for ``thumbprint``; ``None`` if not given."""
    if not thumbprint:
        return None
    identity = find_identity(list_identities(build_identity_store(settings, cert_files)), thumbprint)
    if identity is None:
        click.echo(f"Error: no code-signing certificate with thumbprint {thumbprint}", err=True)
        sys.exit(1)
    return identity


def echo_json(data: Dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def echo_identity(identity: SigningIdentity) -> None:
    click.echo(f"{identity.thumbprint}  {identity.display_name}")


def echo_signature(info: SignatureInfo) -> None:
    click.echo(f"File: {info.path}")
    click.echo(f"Status: {'✓ ' if info.is_valid else '✗ '}{info.status.value}")
    if info.status_message:
        click.echo(f"  {info.status_message}")
    if info.signer_subject:
        click.echo(f"Signer: {info.signer_subject}")
        click.echo(f"Thumbprint: {info.signer_thumbprint}")
    click.echo(f"Timestamp: {info.timestamper_subject or 'none'}")


def report(result: OperationResult, as_json: bool = False) -> None:
    """Print an operation result and exit non-zero on failure."""
    if as_json:
        click.echo(result.to_json())
    elif result.ok:
        click.echo(f"✓ {result.message}")
    else:
        click.echo(f"✗ {result.kind.value}: {result.message}", err=True)
    if not result.ok:
        sys.exit(1)
