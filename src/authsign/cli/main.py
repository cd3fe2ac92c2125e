# SPDX-License-Identifier: MPL-2.0
"""Main CLI entry point."""
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from authsign.cli import commands
from authsign.cli.trust import import_cert
from authsign.config import Architecture
from authsign.core.artifacts import classify_path
from authsign.core.exceptions import AuthsignError
from authsign.core.models import ArtifactKind
from authsign.core.workflow import compute_permissions

cert_option = click.option(
    "--cert",
    "cert_files",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Describe identities from certificate files instead of the user store",
)


@click.group()  # type: ignore[misc]
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="JSON settings file")
@click.option("--lenient", is_flag=True, help="Replace invalid settings with defaults")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], lenient: bool, verbose: bool) -> None:
    """Sign PowerShell scripts and executables with Authenticode."""
    commands.configure_logging(verbose)
    ctx.obj = commands.get_settings(config_path, lenient)


@cli.command()  # type: ignore[misc]
def version() -> None:
    """Show version information."""
    from authsign import __version__

    click.echo(f"authsign v{__version__}")


@cli.command()  # type: ignore[misc]
@click.argument("path", type=click.Path())
def classify(path: str) -> None:
    """Show how PATH is classified."""
    click.echo(classify_path(path).value)


@cli.command()  # type: ignore[misc]
@cert_option
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_obj
def identities(settings, cert_files: Tuple[str, ...], as_json: bool) -> None:
    """List available code-signing certificates."""
    found = commands.list_identities(commands.build_identity_store(settings, cert_files))
    if as_json:
        commands.echo_json({"identities": [i.to_dict() for i in found]})
        return
    if not found:
        click.echo("No code-signing certificates found")
    for identity in found:
        commands.echo_identity(identity)


@cli.command()  # type: ignore[misc]
@click.argument("path", type=click.Path())
@click.option("--thumbprint", "-t", help="Thumbprint of the signing certificate")
@cert_option
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_obj
def status(settings, path: str, thumbprint: Optional[str], cert_files: Tuple[str, ...], as_json: bool) -> None:
    """Show which operations are allowed for PATH."""
    controller = commands.build_controller(settings)
    artifact = controller.select_path(path)
    identity = commands.resolve_identity(settings, thumbprint, cert_files)
    permissions = compute_permissions(artifact, identity)
    if as_json:
        commands.echo_json({
            "artifact": artifact.to_dict(),
            "identity": identity.to_dict() if identity else None,
            "permissions": permissions.to_dict(),
        })
        return
    click.echo(f"File: {artifact.path} ({artifact.kind.value}{'' if artifact.exists else ', missing'})")
    click.echo(f"Identity: {identity.display_name if identity else 'none'}")
    for name, allowed in permissions.to_dict().items():
        click.echo(f"  {'✓' if allowed else '✗'} {name}")


@cli.command()  # type: ignore[misc]
@click.argument("path", type=click.Path())
@click.option("--thumbprint", "-t", required=True, help="Thumbprint of the signing certificate")
@cert_option
@click.option("--timestamp/--no-timestamp", default=None, help="Counter-sign with a timestamp authority")
@click.option("--timestamp-url", help="Timestamp authority URL")
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_obj
def sign(
    settings,
    path: str,
    thumbprint: str,
    cert_files: Tuple[str, ...],
    timestamp: Optional[bool],
    timestamp_url: Optional[str],
    as_json: bool,
) -> None:
    """Sign a script or executable."""
    controller = commands.build_controller(settings)
    artifact = controller.select_path(path)
    controller.select_identity(commands.resolve_identity(settings, thumbprint, cert_files))
    controller.set_timestamping(
        settings.timestamp_enabled if timestamp is None else timestamp, timestamp_url
    )
    if artifact.kind == ArtifactKind.EXECUTABLE:
        result = controller.sign_executable()
    else:
        result = controller.sign_script()
    commands.report(result, as_json)


@cli.command()  # type: ignore[misc]
@click.argument("script", type=click.Path())
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Executable to create")
@click.option("--icon", type=click.Path(exists=True, dir_okay=False), help="Icon file")
@click.option("--product-name", help="Product name")
@click.option("--company", help="Company name")
@click.option("--version-string", "version_string", help="File version")
@click.option("--console/--no-console", default=None, help="Show or hide the console window")
@click.option("--require-admin/--no-require-admin", default=None, help="Request elevation on start")
@click.option("--arch", type=click.Choice([a.value for a in Architecture]), help="Target architecture")
@click.option("--overwrite", is_flag=True, help="Replace an existing executable")
@click.option("--sign", "sign_after", is_flag=True, help="Sign the executable after conversion")
@click.option("--thumbprint", "-t", help="Thumbprint of the signing certificate")
@cert_option
@click.pass_obj
def convert(
    settings,
    script: str,
    output: Optional[str],
    icon: Optional[str],
    product_name: Optional[str],
    company: Optional[str],
    version_string: Optional[str],
    console: Optional[bool],
    require_admin: Optional[bool],
    arch: Optional[str],
    overwrite: bool,
    sign_after: bool,
    thumbprint: Optional[str],
    cert_files: Tuple[str, ...],
) -> None:
    """Convert a PowerShell script to an executable."""
    if sign_after and not thumbprint:
        raise click.UsageError("--sign requires --thumbprint")
    try:
        options = settings.packaging_options(
            output_path=Path(output) if output else None,
            icon_path=Path(icon) if icon else None,
            product_name=product_name,
            company=company,
            version=version_string,
            no_console=None if console is None else not console,
            require_admin=require_admin,
            architecture=arch,
            overwrite=overwrite or None,
        )
    except ValueError as e:
        raise click.BadParameter(str(e))
    controller = commands.build_controller(settings)
    controller.select_path(script)
    controller.select_identity(commands.resolve_identity(settings, thumbprint, cert_files))
    result = controller.convert_to_executable(options)
    commands.report(result)
    if sign_after:
        commands.report(controller.sign_executable())


@cli.command()  # type: ignore[misc]
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
@click.pass_obj
def verify(settings, path: str, as_json: bool) -> None:
    """Show the Authenticode signature of PATH."""
    controller = commands.build_controller(settings)
    try:
        info = controller.signing_service.verify(Path(path))
    except AuthsignError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
    if as_json:
        commands.echo_json(info.to_dict())
    else:
        commands.echo_signature(info)
    if not info.is_valid:
        sys.exit(1)


@cli.command()  # type: ignore[misc]
@click.pass_obj
def session(settings) -> None:
    """Make sure the cloud signing companion is running."""
    commands.report(commands.build_controller(settings).manage_cloud_session())


cli.add_command(import_cert)


if __name__ == "__main__":
    cli()
