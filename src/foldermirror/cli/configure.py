"""Configure command for foldermirror CLI.

Commands:
- configure: Store default connection and folder settings
"""

from __future__ import annotations

import click

from foldermirror.cli.config import get_config_file, load_config, save_config


@click.command()
@click.option("--addr", "address", default=None, help="Address of the remote FTP site.")
@click.option("--user", "username", default=None, help="User name to log in with.")
@click.option("--port", type=click.IntRange(1, 65535), default=None, help="Port number.")
@click.option("--local", "local_folder", default=None, help="Local folder to mirror.")
@click.option("--remote", "remote_folder", default=None, help="Remote folder to mirror into.")
@click.option("--show", is_flag=True, help="Print the stored settings and exit.")
def configure(
    address: str | None,
    username: str | None,
    port: int | None,
    local_folder: str | None,
    remote_folder: str | None,
    show: bool,
) -> None:
    """Store default settings used by 'watch' and 'validate'.

    Passwords are never stored.
    """
    config = load_config()

    if show:
        if not config:
            click.echo("No settings stored.")
        for key, value in sorted(config.items()):
            click.echo(f"{key}: {value}")
        return

    updates = {
        "address": address,
        "username": username,
        "port": port,
        "local_folder": local_folder,
        "remote_folder": remote_folder,
    }
    changed = {key: value for key, value in updates.items() if value is not None}
    if not changed:
        click.echo("Nothing to change. Pass at least one option (see --help).", err=True)
        raise SystemExit(1)

    config.update(changed)
    save_config(config)
    click.echo(f"Saved {', '.join(sorted(changed))} to {get_config_file()}")
