"""
Runtime configuration.

Precedence, highest first:
    explicit overrides (CLI options)
    environment      LATCH_STATE, LATCH_POLICY, LATCH_LOG_LEVEL, LATCH_ROLE
    YAML config file --config / LATCH_CONFIG
    defaults

Example config file:

    state_path: .latch/state.json
    policy_path: policy.yaml
    log_level: INFO
    default_role: creator
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import pydantic
import yaml
from pydantic import BaseModel, Field, field_validator

from latch_escrow.core.exceptions import ConfigError
from latch_escrow.core.models import Role

DEFAULT_STATE_PATH = Path(".latch/state.json")

ENV_CONFIG    = "LATCH_CONFIG"
ENV_STATE     = "LATCH_STATE"
ENV_POLICY    = "LATCH_POLICY"
ENV_LOG_LEVEL = "LATCH_LOG_LEVEL"
ENV_ROLE      = "LATCH_ROLE"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EscrowConfig(BaseModel):
    """Validated runtime settings."""

    state_path:   Path = Field(default=DEFAULT_STATE_PATH)
    policy_path:  Optional[Path] = None
    log_level:    str = Field(default="WARNING")
    default_role: Role = Field(default=Role.CREATOR)

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v) -> str:
        level = str(v).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {v!r} (valid: {', '.join(_LOG_LEVELS)})")
        return level

    @field_validator("default_role", mode="before")
    @classmethod
    def validate_default_role(cls, v) -> Role:
        if isinstance(v, Role):
            return v
        try:
            return Role(str(v).lower())
        except ValueError:
            raise ValueError(f"Unknown role {v!r}") from None

    def configure_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a mapping: {path}")
    return data


def _config_error(exc: pydantic.ValidationError) -> ConfigError:
    """Translate pydantic's error list into a single ConfigError."""
    errors = exc.errors()
    unknown = [str(e["loc"][0]) for e in errors if e["type"] == "extra_forbidden"]
    if unknown:
        return ConfigError("Unknown config keys", {"keys": ",".join(sorted(unknown))})
    first = errors[0]
    field = ".".join(str(part) for part in first["loc"])
    message = first["msg"].removeprefix("Value error, ")
    return ConfigError(message, {"field": field})


def load_config(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    **overrides,
) -> EscrowConfig:
    """Build an EscrowConfig from file, environment and overrides."""
    env = os.environ if env is None else env

    values: dict = {}

    config_path = config_path or env.get(ENV_CONFIG)
    if config_path:
        values.update(_read_yaml(Path(config_path)))

    for key, env_name in (
        ("state_path", ENV_STATE),
        ("policy_path", ENV_POLICY),
        ("log_level", ENV_LOG_LEVEL),
        ("default_role", ENV_ROLE),
    ):
        if env.get(env_name):
            values[key] = env[env_name]

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return EscrowConfig(**values)
    except pydantic.ValidationError as exc:
        raise _config_error(exc) from exc
