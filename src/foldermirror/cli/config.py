"""Configuration utilities for foldermirror CLI.

This module provides shared configuration functions used across CLI commands.
Defaults are read from ~/.foldermirror/config.json; command-line options
always take precedence.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from foldermirror.core.config import DEFAULT_PORT

CONFIG_KEYS = ("address", "username", "port", "local_folder", "remote_folder")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_config_dir() -> Path:
    """Get the configuration directory for foldermirror.

    Returns:
        Path to ~/.foldermirror or equivalent.
    """
    return Path.home() / ".foldermirror"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def resolve_local_folder(value: str | None) -> Path:
    """Resolve the local folder option.

    Args:
        value: Folder from the command line or config, if any.

    Returns:
        Absolute folder path; the current directory when not set.
    """
    if not value:
        return Path.cwd()
    return Path(value).expanduser().resolve()


def merge_options(options: dict[str, Any], config: dict[str, Any]) -> dict[str, Any]:
    """Fill unset command-line options from the config file.

    Args:
        options: Option values from click (None when not given).
        config: Loaded config file.

    Returns:
        Merged settings with the port defaulted to 21.
    """
    merged = dict(options)
    for key in CONFIG_KEYS:
        if merged.get(key) is None and config.get(key) is not None:
            merged[key] = config[key]
    if merged.get("port") is None:
        merged["port"] = DEFAULT_PORT
    return merged


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure logging to output to stdout and optionally a file.

    Args:
        verbose: Log DEBUG messages instead of INFO.
        log_file: Optional path to also write log records to.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger("foldermirror")
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

