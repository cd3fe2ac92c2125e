# SPDX-License-Identifier: MPL-2.0
"""
Certificate import command.

Installs the publisher certificate shipped next to signed files into the
machine trust stores so that their signatures verify as ``Valid``.

Exit codes:
    0  certificate installed, or already trusted
    1  certificate missing or unreadable, or a store failure
    2  not running elevated
"""

import sys
from typing import Sequence, Tuple

import click

from authsign.cli import commands
from authsign.core.exceptions import AuthsignError, ErrorKind
from authsign.services.trust_store import DEFAULT_STORES, TrustStoreInstaller, windows_installer

DEFAULT_CERTIFICATE = "certificate.cer"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NOT_ELEVATED = 2


def build_installer(stores: Sequence[str], location: str) -> TrustStoreInstaller:
    """Create the installer for the machine trust stores; tests replace this."""
    return windows_installer(stores, location)


@click.command("import-cert")  # type: ignore[misc]
@click.argument("certificate", type=click.Path(dir_okay=False), default=DEFAULT_CERTIFICATE)
@click.option(
    "--store",
    "stores",
    multiple=True,
    default=DEFAULT_STORES,
    show_default=True,
    help="Target store name, repeatable",
)
@click.option(
    "--location",
    type=click.Choice(["LocalMachine", "CurrentUser"]),
    default="LocalMachine",
    show_default=True,
)
@click.option("--json", "as_json", is_flag=True, help="Print a machine-readable result")
def import_cert(certificate: str, stores: Tuple[str, ...], location: str, as_json: bool) -> None:
    """Trust the publisher CERTIFICATE (default: ./certificate.cer)."""
    installer = build_installer(stores, location)
    try:
        result = installer.install(certificate)
    except AuthsignError as e:
        code = EXIT_NOT_ELEVATED if e.kind == ErrorKind.INSUFFICIENT_PRIVILEGE else EXIT_FAILURE
        if as_json:
            commands.echo_json({"ok": False, "kind": e.kind.value, "message": e.message})
        else:
            click.echo(f"✗ {e.message}", err=True)
        sys.exit(code)

    if as_json:
        commands.echo_json({"ok": True, "result": result.value, "certificate": certificate})
    else:
        click.echo(f"✓ {certificate}: {result.value.replace('_', ' ')}")
    sys.exit(EXIT_OK)


def main() -> None:
    """Entry point for the stand-alone import tool."""
    import_cert()


if __name__ == "__main__":
    main()
