"""Configuration loading from YAML files and environment variables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from txa.errors import ConfigError

# Optional properties only; the five thresholds/window settings have no default.
DEFAULT_CONFIG: dict[str, Any] = {
    "uri.key.from": "coap://10.255.8.101/mt",
    "uri.key.to": "coap://10.255.8.102/mt",
    "device.key.from": "01",
    "device.key.to": "50",
    "store.backend": "memory",
    "mongodb": {},
}

ENV_MAPPINGS: dict[str, str] = {
    "TXA_BIG_SIZE_THRESHOLD": "big.size.threshod",
    "TXA_BIG_SIZE_PROPORTION_THRESHOLD": "big.size.proportion.threshod",
    "TXA_TIME_WINDOW_SECONDS": "time.window.in.second",
    "TXA_TIME_WINDOW_STEP_SECONDS": "time.window.step.in.second",
    "TXA_TPM_THRESHOLD": "tx.per.minute.threshod",
    "TXA_STORE_BACKEND": "store.backend",
}


class AnalyzerConfig(BaseModel):
    """Validated, immutable analyzer settings.

    Property names keep the dotted spelling of the deployed configuration
    files (including the ``threshod`` typo) as aliases.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    big_size_threshold: int = Field(alias="big.size.threshod", ge=0)
    big_size_proportion_threshold: float = Field(
        alias="big.size.proportion.threshod", ge=0.0, le=1.0,
    )
    window_seconds: int = Field(alias="time.window.in.second", gt=0)
    step_seconds: int = Field(alias="time.window.step.in.second", gt=0)
    tpm_threshold: int = Field(alias="tx.per.minute.threshod", ge=0)

    uri_key_from: str = Field(default=DEFAULT_CONFIG["uri.key.from"], alias="uri.key.from")
    uri_key_to: str = Field(default=DEFAULT_CONFIG["uri.key.to"], alias="uri.key.to")
    device_key_from: str = Field(default=DEFAULT_CONFIG["device.key.from"], alias="device.key.from")
    device_key_to: str = Field(default=DEFAULT_CONFIG["device.key.to"], alias="device.key.to")
    store_backend: Literal["memory", "mongodb"] = Field(default="memory", alias="store.backend")
    mongodb: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _step_within_window(self) -> AnalyzerConfig:
        if self.step_seconds > self.window_seconds:
            raise ValueError("time.window.step.in.second must not exceed time.window.in.second")
        return self

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000

    @property
    def step_ms(self) -> int:
        return self.step_seconds * 1000

    @property
    def window_minutes(self) -> float:
        return self.window_seconds / 60

    @property
    def retention_ms(self) -> int:
        return self.window_ms * 2


def load_config(config_path: str | Path | None = None) -> AnalyzerConfig:
    """Load configuration from a YAML file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (TXA_* prefix)
    2. YAML config file
    3. Default values (optional properties only)

    Raises:
        ConfigError: The file is missing or unreadable, or a required
            property is missing or malformed.
    """
    config = _deep_copy_dict(DEFAULT_CONFIG)

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        config = _deep_merge(config, file_config)

    _apply_env_overrides(config)
    return parse_config(config)


def parse_config(raw: dict[str, Any]) -> AnalyzerConfig:
    """Validate a raw property mapping into an AnalyzerConfig."""
    try:
        return AnalyzerConfig.model_validate(raw)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e


def _apply_env_overrides(config: dict[str, Any]) -> None:
    """Apply environment variable overrides to config."""
    for env_var, key in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value:
            config[key] = value

    mongo_mappings = {
        "TXA_MONGO_URI": "uri",
        "TXA_MONGO_DB": "database",
    }
    for env_var, key in mongo_mappings.items():
        value = os.environ.get(env_var)
        if value:
            config.setdefault("mongodb", {})[key] = value


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override dict into base dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _deep_copy_dict(d: dict) -> dict:
    """Deep copy a nested dict structure."""
    result = {}
    for key, value in d.items():
        if isinstance(value, dict):
            result[key] = _deep_copy_dict(value)
        elif isinstance(value, list):
            result[key] = value.copy()
        else:
            result[key] = value
    return result
