"""
Configuration Module

Architectural Intent:
- Centralized configuration loading for the EC2 CPI adapter
- Provides typed access to region, transport, wait and telemetry settings
- Falls back to sensible defaults when the config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- Top-level keys may contain underscores (CPI_AWS_ENDPOINT_URL), so they are
  matched before the SECTION_KEY split
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import dataclasses
import json
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "cpi_aws.json"
DEFAULT_ENV_PREFIX = "CPI_AWS"


@dataclass(frozen=True)
class DefaultsConfig:
    """Values applied when an action omits an optional parameter."""
    volume_type: str = "gp2"


@dataclass(frozen=True)
class WaitConfig:
    """Bounded wait used by create_worker(wait_for_running=true)."""
    timeout_seconds: float = 300.0
    poll_interval_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.timeout_seconds < 0:
            raise ValueError("wait.timeout_seconds must be >= 0")
        if self.poll_interval_seconds <= 0:
            raise ValueError("wait.poll_interval_seconds must be > 0")


RETRY_MODES = ("legacy", "standard", "adaptive")


@dataclass(frozen=True)
class TransportConfig:
    """botocore client transport settings."""
    max_attempts: int = 3
    retry_mode: str = "standard"
    connect_timeout: int = 10
    read_timeout: int = 60

    def __post_init__(self) -> None:
        if self.retry_mode not in RETRY_MODES:
            raise ValueError(
                f"transport.retry_mode must be one of {', '.join(RETRY_MODES)}, "
                f"got {self.retry_mode!r}"
            )
        if self.max_attempts < 1:
            raise ValueError("transport.max_attempts must be >= 1")


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration."""
    endpoint: str = ""
    insecure: bool = False
    service_name: str = "cpi-aws"


@dataclass(frozen=True)
class CpiConfig:
    """Root configuration for the adapter."""
    region: str = "us-east-1"
    profile: str = ""
    endpoint_url: str = ""
    log_level: str = "WARNING"
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    wait: WaitConfig = field(default_factory=WaitConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)


_TOP_LEVEL_KEYS = ("region", "profile", "endpoint_url", "log_level")


def _env_override(data: dict, prefix: str = DEFAULT_ENV_PREFIX) -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern CPI_AWS_SECTION_KEY.
    For example: CPI_AWS_REGION=eu-west-1, CPI_AWS_WAIT_TIMEOUT_SECONDS=120
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in _TOP_LEVEL_KEYS:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
        else:
            data[parts[0]] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.items() if k in valid_fields}

    # Environment values arrive as strings
    for f in dataclasses.fields(cls):
        if f.name in filtered and isinstance(filtered[f.name], str):
            if f.type == "int":
                filtered[f.name] = int(filtered[f.name])
            elif f.type == "float":
                filtered[f.name] = float(filtered[f.name])
            elif f.type == "bool":
                filtered[f.name] = filtered[f.name].lower() in ("true", "1", "yes")

    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
) -> CpiConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (CPI_AWS_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to cpi_aws.json in CWD.
        env_prefix: Environment variable prefix. Defaults to CPI_AWS.
    """
    config_path = Path(path) if path else Path(DEFAULT_CONFIG_FILE)
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return CpiConfig(
        region=data.get("region") or "us-east-1",
        profile=data.get("profile", ""),
        endpoint_url=data.get("endpoint_url", ""),
        log_level=data.get("log_level", "WARNING"),
        defaults=_build_sub_config(DefaultsConfig, data.get("defaults", {})),
        wait=_build_sub_config(WaitConfig, data.get("wait", {})),
        transport=_build_sub_config(TransportConfig, data.get("transport", {})),
        telemetry=_build_sub_config(TelemetryConfig, data.get("telemetry", {})),
    )
