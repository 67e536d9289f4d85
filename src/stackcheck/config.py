"""Harness configuration management.

Values come from, highest precedence first:
1. CLI flags (passed as overrides)
2. Environment variables (STACKCHECK_<FIELD>)
3. Config file (--config, ./stackcheck.yaml or ~/.stackcheck/config.yaml)
4. Defaults

The source of every value is tracked for ``stackcheck config show``.
"""

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

ENV_PREFIX = "STACKCHECK_"
LOCAL_CONFIG_NAME = "stackcheck.yaml"

DEFAULT_BINARY = "okteto"
DEFAULT_GIT_REMOTE = "git@github.com:okteto/stacks-getting-started.git"
DEFAULT_MANIFEST = "okteto-stack.yml"
DEFAULT_DOMAIN = "cloud.okteto.net"
DEFAULT_MARKER = "Cats vs Dogs!"

# Attempt counts, each at least 1
ATTEMPT_KEYS = ("probe_attempts", "absence_attempts")


def _default_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


@dataclass
class HarnessConfig:
    """Harness configuration."""

    binary: str = DEFAULT_BINARY
    git_remote: str = DEFAULT_GIT_REMOTE
    repo_dir: str | None = None
    work_dir: str = "."
    manifest: str = DEFAULT_MANIFEST
    service: str = "vote"
    resource_kind: str = "deployment"
    resource_name: str | None = None
    domain: str = DEFAULT_DOMAIN
    marker: str = DEFAULT_MARKER
    base_name: str = "TestStacks"
    namespace_prefix: str | None = None
    user: str = field(default_factory=_default_user)
    mode: str = "server"
    kubeconfig: str | None = None

    probe_attempts: int = 150
    probe_interval: float = 1.0
    probe_timeout: float = 5.0

    absence_wait: float = 5.0
    absence_attempts: int = 1
    absence_interval: float = 2.0

    scenario_timeout: float = 0.0

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict, repr=False)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def values(self) -> dict[str, Any]:
        """Public config values keyed by field name."""
        return {name: getattr(self, name) for name in config_keys()}


def config_keys() -> list[str]:
    return [f.name for f in fields(HarnessConfig) if not f.name.startswith("_")]


def _field_type(key: str) -> str:
    for f in fields(HarnessConfig):
        if f.name == key:
            return str(f.type)
    raise KeyError(key)


def _coerce(key: str, value: Any, source: str) -> Any:
    """Convert a raw file/env value to the field's type."""
    kind = _field_type(key)
    if value is None:
        if "None" in kind:
            return None
        raise ConfigError(message=f"{key} cannot be empty ({source})", key=key, source=source)
    try:
        if kind.startswith("int"):
            return int(value)
        if kind.startswith("float"):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(
            message=f"invalid value for {key} from {source}: {value!r}",
            key=key,
            source=source,
        ) from e
    return str(value)


def get_config_path(explicit: str | Path | None = None) -> Path | None:
    """Find the config file to load.

    Returns:
        The explicit path if given, else ./stackcheck.yaml, else
        ~/.stackcheck/config.yaml; None when none exists.
    """
    if explicit:
        return Path(explicit)
    local = Path.cwd() / LOCAL_CONFIG_NAME
    if local.exists():
        return local
    home = Path.home() / ".stackcheck" / "config.yaml"
    if home.exists():
        return home
    return None


def load_config(
    path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> HarnessConfig:
    """Load harness configuration.

    Args:
        path: Explicit config file. It must exist when given.
        overrides: Values from CLI flags; they win over everything else.
            ``None`` values are ignored.

    Returns:
        HarnessConfig with values and sources

    Raises:
        ConfigError: If the file is unreadable or a value is invalid.
    """
    config = HarnessConfig()
    keys = config_keys()
    sources: dict[str, str] = {key: "default" for key in keys}

    config_path = get_config_path(path)
    if config_path is not None:
        try:
            with open(config_path) as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(
                message=f"cannot read config file {config_path}: {e}",
                source=str(config_path),
            ) from e
        if not isinstance(file_config, dict):
            raise ConfigError(
                message=f"config file {config_path} must contain a mapping",
                source=str(config_path),
            )

        for key in keys:
            if key in file_config:
                setattr(config, key, _coerce(key, file_config[key], "config file"))
                sources[key] = "config file"

    for key in keys:
        raw = os.environ.get(ENV_PREFIX + key.upper())
        if raw:
            setattr(config, key, _coerce(key, raw, "environment"))
            sources[key] = "environment"

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        if key not in keys:
            raise ConfigError(message=f"unknown config key: {key}", key=key, source="flag")
        setattr(config, key, _coerce(key, value, "flag"))
        sources[key] = "flag"

    for key in ATTEMPT_KEYS:
        if getattr(config, key) < 1:
            raise ConfigError(
                message=f"{key} must be at least 1 ({sources[key]})",
                key=key,
                source=sources[key],
            )

    config._sources = sources
    return config
