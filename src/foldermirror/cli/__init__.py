"""Command-line interface for foldermirror.

This module provides the main CLI entry point and assembles all commands.

Commands:
- watch: Mirror a local folder onto an FTP site until stopped
- validate: Check that the FTP site accepts the login
- configure: Store default settings
"""

from __future__ import annotations

import click

from foldermirror.cli.config import (
    get_config_dir,
    get_config_file,
    load_config,
    save_config,
    setup_logging,
)
from foldermirror.cli.configure import configure
from foldermirror.cli.watch import validate, watch


@click.group()
@click.version_option(package_name="foldermirror")
def cli() -> None:
    """foldermirror - Mirror a local folder onto an FTP site."""


cli.add_command(watch)
cli.add_command(validate)
cli.add_command(configure)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "get_config_dir",
    "get_config_file",
    "load_config",
    "save_config",
    "setup_logging",
]
