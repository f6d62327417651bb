"""Settings from ``gha-fix.toml``.

Keys use dashes, as on the command line::

    log-level = "info"
    ignore-dirs = [".git", "node_modules"]

    [pin]
    ignore-owners = ["actions"]
    ignore-repos = ["docker/login-action"]
    strict-pinning = false

    [timeout]
    timeout-value = 5
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError, field_validator

from gha_fix.core.rewrite import DEFAULT_IGNORE_DIRS
from gha_fix.core.timeout import DEFAULT_TIMEOUT_MINUTES

DEFAULT_CONFIG_NAME = "gha-fix.toml"
LOG_LEVELS = ("debug", "info", "warn", "error")


class ConfigError(Exception):
    pass


def split_names(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    """Accept ``"a,b"`` as well as ``["a", "b"]``; blanks are dropped."""
    if value is None:
        return []
    items = [value] if isinstance(value, str) else list(value)
    return [part.strip() for item in items for part in item.split(",") if part.strip()]


class _Section(BaseModel):
    model_config = ConfigDict(
        alias_generator=lambda name: name.replace("_", "-"),
        populate_by_name=True,
        extra="forbid",
    )


class PinSettings(_Section):
    ignore_owners: list[str] = Field(default_factory=list)
    ignore_repos: list[str] = Field(default_factory=list)
    strict_pinning: bool = False
    github_token: str | None = None

    @field_validator("ignore_owners", "ignore_repos", mode="before")
    @classmethod
    def split_lists(cls, value: str | list[str] | None) -> list[str]:
        return split_names(value)


class TimeoutSettings(_Section):
    timeout_value: PositiveInt = DEFAULT_TIMEOUT_MINUTES


class Settings(_Section):
    log_level: str = "info"
    ignore_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE_DIRS))
    pin: PinSettings = Field(default_factory=PinSettings)
    timeout: TimeoutSettings = Field(default_factory=TimeoutSettings)

    @field_validator("ignore_dirs", mode="before")
    @classmethod
    def split_lists(cls, value: str | list[str] | None) -> list[str]:
        return split_names(value)


def load_settings(config_path: Path | None = None, root: Path | None = None) -> Settings:
    """Read settings from ``config_path``, or ``gha-fix.toml`` under ``root`` if present.

    An explicitly given file must exist.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = (root if root is not None else Path.cwd()) / DEFAULT_CONFIG_NAME

    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        if explicit:
            raise ConfigError(f"config file not found: {config_path}") from None
        return Settings()
    except OSError as exc:
        raise ConfigError(f"cannot read config file {config_path}: {exc}") from exc

    try:
        data = tomllib.loads(raw)
        return Settings.model_validate(data)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid TOML in {config_path}: {exc}") from exc
    except ValidationError as exc:
        raise ConfigError(f"invalid settings in {config_path}: {exc}") from exc
