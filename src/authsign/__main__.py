# SPDX-License-Identifier: MPL-2.0
"""
authsign - Main entry point for the CLI.

This module provides the command-line interface for the authsign package.
"""

from authsign.cli.main import cli

if __name__ == "__main__":
    cli()
