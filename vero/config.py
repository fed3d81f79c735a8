"""
Vero — Configuration System

All configuration is Pydantic-validated and loaded from:
1. default.yaml (or the file named by VERO_CONFIG_PATH)
2. Environment overrides for the deployment-specific keys:
   VERO_REGISTRY__DEPLOYER, VERO_REGISTRY__ADDRESS,
   VERO_LOGGING__LEVEL, VERO_LOGGING__FORMAT
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ─── Sub-configs ──────────────────────────────────────────────────


class RegistryConfig(BaseModel):
    name: str = "VERO"
    symbol: str = "w̥"
    # Initial admin identity. Must not be the absent identity.
    deployer: str = ""
    # Registry's own identity. Derived from the deployer when empty.
    address: str = ""


class EventBusConfig(BaseModel):
    callback_timeout_s: float = 0.1


class ServerConfig(BaseModel):
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    # Header carrying the caller identity on every request
    caller_header: str = "X-Vero-Caller"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "console"  # "console" | "json"

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        if value not in ("console", "json"):
            raise ValueError(f"unknown log format: {value}")
        return value


# ─── Root Configuration ──────────────────────────────────────────


class VeroConfig(BaseSettings):
    """
    Root configuration. Loads from YAML, overridable by env vars.
    """

    model_config = SettingsConfigDict(
        env_prefix="VERO_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    event_bus: EventBusConfig = Field(default_factory=EventBusConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: str | Path | None = None) -> VeroConfig:
    """
    Load configuration from YAML file, then apply environment variable overrides.

    Init kwargs outrank the environment in pydantic-settings, so the
    environment is folded into the YAML dict here before construction.
    """
    raw: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                raw = yaml.safe_load(f) or {}

    env_overrides: dict[str, Any] = {}
    if deployer := os.environ.get("VERO_REGISTRY__DEPLOYER"):
        env_overrides.setdefault("registry", {})["deployer"] = deployer
    if address := os.environ.get("VERO_REGISTRY__ADDRESS"):
        env_overrides.setdefault("registry", {})["address"] = address
    if log_level := os.environ.get("VERO_LOGGING__LEVEL"):
        env_overrides.setdefault("logging", {})["level"] = log_level
    if log_format := os.environ.get("VERO_LOGGING__FORMAT"):
        env_overrides.setdefault("logging", {})["format"] = log_format

    return VeroConfig(**_deep_merge(raw, env_overrides))
