"""Helpers shared by CLI commands."""

from __future__ import annotations

import sys
from typing import Any

import click

from ..config import HarnessConfig, load_config
from ..errors import ConfigError


def load_or_exit(ctx: click.Context, overrides: dict[str, Any] | None = None) -> HarnessConfig:
    """Load config for a command, exiting with status 1 on invalid config."""
    try:
        return load_config(ctx.obj.get("config_path"), overrides=overrides)
    except ConfigError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)
