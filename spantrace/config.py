"""Configuration loading: TOML file, environment variables and explicit overrides.

Priority, highest first:
- explicit overrides passed by the caller
- ``SPANTRACE_*`` environment variables
- the TOML config file (``./spantrace.toml`` or ``~/.spantrace/config.toml``)
- defaults declared on ``TracingSettings``
"""

from __future__ import annotations

import ipaddress
import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from spantrace.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "spantrace.toml"
ENV_PREFIX = "SPANTRACE_"

# (section, key in file) -> settings field
_TOML_FIELDS = {
    ("tracing", "sample_rate"): "sample_rate",
    ("tracing", "sample_one_in"): "sample_one_in",
    ("tracing", "debug"): "debug",
    ("endpoint", "service_name"): "service_name",
    ("endpoint", "ipv4"): "ipv4",
    ("endpoint", "port"): "port",
    ("collector", "type"): "collector",
    ("collector", "otlp_endpoint"): "otlp_endpoint",
    ("collector", "batch"): "batch_export",
}


class TracingSettings(BaseModel):
    """Validated settings used to assemble a ClientTracer."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    service_name: str = Field(default="unknown", description="Local service name, lowercase")
    ipv4: str = Field(default="127.0.0.1", description="IPv4 literal of the local service")
    port: int = Field(default=0, ge=0, le=65535, description="Local port, 0 if unknown")
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0, description="Probability of tracing an undecided request")
    sample_one_in: Optional[int] = Field(default=None, ge=1, description="Trace one request out of N")
    collector: Literal["logging", "empty", "console", "otlp"] = "logging"
    otlp_endpoint: Optional[str] = None
    batch_export: bool = True
    debug: bool = False

    @field_validator("service_name")
    @classmethod
    def normalize_service_name(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("service_name must not be empty")
        return v

    @field_validator("ipv4")
    @classmethod
    def validate_ipv4(cls, v: str) -> str:
        try:
            ipaddress.IPv4Address(v)
        except ValueError as e:
            raise ValueError(f"invalid IPv4 address: {v}") from e
        return v


def find_config_file() -> Optional[str]:
    """Return the first config file found in the current directory, then the home directory."""
    candidates = [
        Path.cwd() / CONFIG_FILE_NAME,
        Path.home() / ".spantrace" / "config.toml",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)
    return None


def load_toml_config(path: str) -> Dict[str, Any]:
    """
    Load a TOML config file.

    Returns:
        Parsed content as nested dict, or an empty dict if the file does not exist

    Raises:
        ConfigError: if the file is not valid TOML
    """
    file_path = Path(path)
    if not file_path.is_file():
        return {}
    try:
        with file_path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in config file: {e}", {"path": str(file_path)}) from e


def _flatten_toml(data: Mapping[str, Any]) -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for (section, key), field_name in _TOML_FIELDS.items():
        section_data = data.get(section)
        if isinstance(section_data, Mapping) and key in section_data:
            flat[field_name] = section_data[key]
    return flat


def _load_env() -> Dict[str, Any]:
    env: Dict[str, Any] = {}
    for field_name in TracingSettings.model_fields:
        value = os.getenv(ENV_PREFIX + field_name.upper())
        if value is not None:
            env[field_name] = value
    return env


def load_config_with_priority(
    config_file: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Merge file, environment and explicit overrides into one flat dict.

    ``None`` values in ``overrides`` are ignored so callers can pass optional
    keyword arguments straight through.
    """
    merged: Dict[str, Any] = {}

    path = config_file or find_config_file()
    if path:
        merged.update(_flatten_toml(load_toml_config(path)))
        logger.debug("Loaded tracing config from %s", path)

    merged.update(_load_env())

    if overrides:
        merged.update({k: v for k, v in overrides.items() if v is not None})
    return merged


def validate_config(values: Mapping[str, Any]) -> TracingSettings:
    """
    Validate a flat settings dict.

    Raises:
        ConfigError: with one entry per invalid field in ``details``
    """
    try:
        return TracingSettings(**values)
    except PydanticValidationError as e:
        details = {".".join(str(p) for p in err["loc"]): err["msg"] for err in e.errors()}
        raise ConfigError("Invalid tracing configuration", details) from e


def load_config(
    config_file: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> TracingSettings:
    """Load and validate settings from every source."""
    return validate_config(load_config_with_priority(config_file, overrides))
