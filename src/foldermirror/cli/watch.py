"""Watch and validate commands for foldermirror CLI.

Commands:
- watch: Mirror a local folder onto an FTP site until stopped
- validate: Check that the FTP site accepts the login
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Any

import click

from foldermirror.cli.config import (
    load_config,
    merge_options,
    resolve_local_folder,
    setup_logging,
)
from foldermirror.core.config import DEFAULT_SETTLE_DELAY, MirrorConfig


def connection_options(func: Any) -> Any:
    """Options shared by every command that talks to the FTP site."""
    options = [
        click.option("--addr", "address", default=None, help="Address of the remote FTP site."),
        click.option("--user", "username", default=None, help="User name to log in with."),
        click.option(
            "--port",
            type=click.IntRange(1, 65535),
            default=None,
            help="Port number of the remote site. Default is 21.",
        ),
        click.option(
            "--pass",
            "password",
            default=None,
            help="Password to log in with. Omit to be prompted.",
        ),
        click.option("--tls", is_flag=True, help="Use explicit FTP over TLS."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_config(settings: dict[str, Any]) -> MirrorConfig:
    """Turn merged CLI settings into a MirrorConfig.

    Exits with status 1 when the address or user name is missing, and
    prompts for the password when it was not given.
    """
    if not settings.get("address") or not settings.get("username"):
        click.echo("Error: --addr and --user are required.", err=True)
        sys.exit(1)

    password = settings.get("password")
    if password is None:
        if not sys.stdin.isatty():
            click.echo("Error: Password is required (use --pass).", err=True)
            sys.exit(1)
        password = click.prompt("Remote FTP password", hide_input=True)

    try:
        return MirrorConfig(
            address=settings["address"],
            username=settings["username"],
            password=password,
            port=int(settings["port"]),
            local_folder=resolve_local_folder(settings.get("local_folder")),
            remote_folder=settings.get("remote_folder") or "",
            use_tls=bool(settings.get("tls")),
            settle_delay=(
                DEFAULT_SETTLE_DELAY
                if settings.get("settle_delay") is None
                else settings["settle_delay"]
            ),
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def wait_for_exit() -> None:
    """Block until the user types 'exit' or the process is interrupted."""
    if sys.stdin.isatty():
        line = None
        while line != "exit":
            click.echo("Type 'exit' to stop.")
            line = sys.stdin.readline()
            if not line:
                return
            line = line.strip()
    else:
        threading.Event().wait()


@click.command()
@connection_options
@click.option(
    "--local",
    "local_folder",
    default=None,
    help="Local folder to mirror. Default is the current directory.",
)
@click.option(
    "--remote",
    "remote_folder",
    default=None,
    help="Remote folder to mirror into. Default is the root folder.",
)
@click.option(
    "--settle-delay",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds to wait after a change before mirroring it.",
)
@click.option("--ignore", "ignore", multiple=True, help="Pattern to leave unmirrored (repeatable).")
@click.option(
    "--ignore-temp",
    is_flag=True,
    help="Also skip editor swap files and OS scratch files (*.tmp, *.swp, ~*, ...).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write log messages to this file.",
)
def watch(
    address: str | None,
    username: str | None,
    port: int | None,
    password: str | None,
    tls: bool,
    local_folder: str | None,
    remote_folder: str | None,
    settle_delay: float | None,
    ignore: tuple[str, ...],
    ignore_temp: bool,
    verbose: bool,
    log_file: Path | None,
) -> None:
    """Mirror a local folder onto an FTP site.

    Uploads files as they are created or modified, deletes them remotely when
    they are deleted locally, and follows new subfolders automatically.
    """
    from foldermirror.core.types import WatchError, remote_join
    from foldermirror.remote import FTPStore, RemoteMirror
    from foldermirror.watch import (
        IGNORE_FILENAME,
        DirectoryWatchEngine,
        IgnorePatterns,
    )

    setup_logging(verbose=verbose, log_file=log_file)

    settings = merge_options(
        {
            "address": address,
            "username": username,
            "port": port,
            "password": password,
            "tls": tls,
            "local_folder": local_folder,
            "remote_folder": remote_folder,
            "settle_delay": settle_delay,
        },
        load_config(),
    )
    config = build_config(settings)

    if not config.local_folder.is_dir():
        click.echo(f"Error: Local folder does not exist: {config.local_folder}", err=True)
        sys.exit(1)

    store = FTPStore(config)

    click.echo("Validating connection...")
    if not store.validate():
        click.echo("Error: Connection invalid.", err=True)
        sys.exit(1)
    click.echo("Connection valid.")

    ignore_patterns = IgnorePatterns(list(ignore), include_defaults=ignore_temp)
    ignore_patterns.load_from_file(config.local_folder / IGNORE_FILENAME)

    mirror = RemoteMirror(store, config.remote_folder)
    engine = DirectoryWatchEngine(
        config.local_folder,
        mirror,
        settle_delay=config.settle_delay,
        ignore_patterns=ignore_patterns,
    )

    try:
        engine.initialize()
    except WatchError as e:
        click.echo(f"Error: {e}", err=True)
        engine.dispose()
        sys.exit(1)

    engine.start()
    remote_label = remote_join(config.remote_folder)
    click.echo(f"Mirroring {config.local_folder} to {config.display_address}{remote_label}")

    try:
        wait_for_exit()
    except KeyboardInterrupt:
        click.echo("\nStopping...")
    finally:
        engine.dispose()
        store.close()

    stats = engine.stats
    click.echo(
        f"Stopped: {stats.uploads} uploads, {stats.deletes} deletes, "
        f"{stats.mirror_failures} failed"
    )
    if stats.overflows:
        click.echo(
            click.style(
                f"Warning: {stats.overflows} change notifications were lost; "
                "the remote copy may be out of date.",
                fg="yellow",
            )
        )


@click.command()
@connection_options
@click.option("--verbose", "-v", is_flag=True, help="Log debug messages.")
def validate(
    address: str | None,
    username: str | None,
    port: int | None,
    password: str | None,
    tls: bool,
    verbose: bool,
) -> None:
    """Check that the FTP site accepts the login."""
    from foldermirror.remote import FTPStore

    setup_logging(verbose=verbose)

    settings = merge_options(
        {
            "address": address,
            "username": username,
            "port": port,
            "password": password,
            "tls": tls,
        },
        load_config(),
    )
    config = build_config(settings)

    click.echo("Validating connection...")
    store = FTPStore(config)
    if not store.validate():
        click.echo("Error: Connection invalid.", err=True)
        sys.exit(1)
    store.close()
    click.echo("Connection valid.")
