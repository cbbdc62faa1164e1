"""Centralized application configuration with schema validation.

Values are resolved in this order:
- nested environment names (for example ``DB__URL``)
- legacy flat names (for example ``DB_URL``)
- a local ``.env`` file, overridden by the process environment
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from threading import Lock

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_DEFAULT_ADAPTERS = ["messari"]


def _normalize_level(value: object) -> str:
    text = str(value or "").strip().upper()
    if text in _LOG_LEVELS:
        return text
    return "INFO"


class DatabaseConfig(BaseModel):
    """Database connection settings."""

    model_config = ConfigDict(frozen=True)

    url: str | None = Field(default=None, description="Postgres connection URL")
    pool_maxconn: int = Field(default=10, ge=1, le=100)
    connect_timeout: int = Field(default=5, ge=1, le=60)


class APIConfig(BaseModel):
    """Flask API runtime configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=1, le=65535)
    version: str = Field(default="v1")
    debug_errors: bool = Field(default=False)
    enforce_schema_gate: bool = Field(default=True)
    bearer_token: str = Field(default="")

    @field_validator("version")
    @classmethod
    def _normalize_version(cls, value: str) -> str:
        text = str(value or "").strip().lower()
        if re.match(r"^v\d+$", text):
            return text
        return "v1"


class LoggingSettings(BaseModel):
    """Repository-wide logging settings."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)
    override_root_handlers: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return _normalize_level(value)


class DbMetricsConfig(BaseModel):
    """DB query instrumentation settings."""

    model_config = ConfigDict(frozen=True)

    metrics_enabled: bool = Field(default=True)
    slow_query_threshold_ms: float = Field(default=1000.0, ge=0.0)

    @field_validator("metrics_enabled", mode="before")
    @classmethod
    def _normalize_metrics_enabled(cls, value: object) -> bool:
        if value is None:
            return True
        text = str(value).strip().lower()
        if text in {"0", "false", "no", "off"}:
            return False
        return True

    @field_validator("slow_query_threshold_ms", mode="before")
    @classmethod
    def _normalize_threshold_ms(cls, value: object) -> float:
        if value is None:
            return 1000.0
        text = str(value).strip()
        if text == "":
            return 1000.0
        try:
            parsed = float(text)
        except (TypeError, ValueError):
            return 1000.0
        return max(0.0, parsed)


class InsightsConfig(BaseModel):
    """Correlation engine knobs."""

    model_config = ConfigDict(frozen=True)

    window_days: int = Field(default=14, ge=1, le=365)
    fetch_timeout_seconds: float = Field(default=10.0, gt=0.0, le=300.0)


class DiscoveryConfigSettings(BaseModel):
    """Discovery pipeline and acquisition adapter settings."""

    model_config = ConfigDict(frozen=True)

    adapters: list[str] = Field(default_factory=lambda: list(_DEFAULT_ADAPTERS))
    adapter_timeout_seconds: float = Field(default=15.0, gt=0.0, le=300.0)
    max_candidates_per_run: int = Field(default=30, ge=1, le=1000)
    messari_url: str = Field(default="https://data.messari.io/api/v2/projects")
    messari_api_key: str | None = Field(default=None)

    @field_validator("adapters", mode="before")
    @classmethod
    def _normalize_adapters(cls, value: object) -> list[str]:
        """Accept list or comma-separated string; lowercase and de-duplicate in order."""
        if value is None:
            return list(_DEFAULT_ADAPTERS)

        items: list[str]
        if isinstance(value, str):
            items = [part.strip().lower() for part in value.split(",") if part.strip()]
        elif isinstance(value, list):
            items = [str(part).strip().lower() for part in value if str(part).strip()]
        else:
            raise TypeError("discovery.adapters must be a list[str] or comma-separated string")

        seen: set[str] = set()
        ordered: list[str] = []
        for name in items:
            if name not in seen:
                seen.add(name)
                ordered.append(name)
        return ordered

    @field_validator("messari_api_key", mode="before")
    @classmethod
    def _normalize_api_key(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class Settings(BaseModel):
    """Top-level settings model."""

    model_config = ConfigDict(frozen=True)

    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    db_metrics: DbMetricsConfig = Field(default_factory=DbMetricsConfig)
    insights: InsightsConfig = Field(default_factory=InsightsConfig)
    discovery: DiscoveryConfigSettings = Field(default_factory=DiscoveryConfigSettings)

    @classmethod
    def from_env(
        cls,
        *,
        env: Mapping[str, str] | None = None,
        env_file: str = ".env",
    ) -> Settings:
        """Build settings from `.env` then environment variables."""
        runtime_env = os.environ if env is None else env
        merged_env = _merge_env(_load_dotenv(Path(env_file)), runtime_env)
        payload = _build_payload(merged_env)
        return cls.model_validate(payload)


def _load_dotenv(path: Path) -> dict[str, str]:
    """Parse a minimal `.env` file format."""
    if not path.exists() or not path.is_file():
        return {}

    values: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, raw_value = line.split("=", 1)
        value = raw_value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if key.strip():
            values[key.strip()] = value
    return values


def _merge_env(dotenv_values: Mapping[str, str], runtime_env: Mapping[str, str]) -> dict[str, str]:
    """Return env map where process env overrides `.env` values."""
    merged = {str(k): str(v) for k, v in dotenv_values.items()}
    for key, value in runtime_env.items():
        merged[str(key)] = str(value)
    return merged


def _first_non_empty(env: Mapping[str, str], *keys: str) -> str | None:
    """Return the first non-empty value for the provided keys."""
    for key in keys:
        value = str(env.get(key, "")).strip()
        if value:
            return value
    return None


def _build_payload(env: Mapping[str, str]) -> dict[str, object]:
    """Build nested settings payload from env values."""
    db = {
        "url": _first_non_empty(env, "DB__URL", "DB_URL", "DATABASE_URL"),
        "pool_maxconn": _first_non_empty(env, "DB__POOL_MAXCONN", "DB_POOL_MAXCONN"),
        "connect_timeout": _first_non_empty(env, "DB__CONNECT_TIMEOUT", "DB_CONNECT_TIMEOUT"),
    }
    api = {
        "host": _first_non_empty(env, "API__HOST", "API_HOST", "HOST"),
        "port": _first_non_empty(env, "API__PORT", "API_PORT", "PORT"),
        "version": _first_non_empty(env, "API__VERSION", "API_VERSION"),
        "debug_errors": _first_non_empty(env, "API__DEBUG_ERRORS", "API_DEBUG_ERRORS"),
        "enforce_schema_gate": _first_non_empty(env, "API__ENFORCE_SCHEMA_GATE", "API_ENFORCE_SCHEMA_GATE"),
        "bearer_token": _first_non_empty(env, "API__BEARER_TOKEN", "API_BEARER_TOKEN"),
    }
    logging_settings = {
        "level": _first_non_empty(env, "LOGGING__LEVEL", "TESTNET_LOG_LEVEL"),
        "json_logs": _first_non_empty(env, "LOGGING__JSON_LOGS", "TESTNET_LOG_JSON"),
        "override_root_handlers": _first_non_empty(
            env, "LOGGING__OVERRIDE_ROOT_HANDLERS", "TESTNET_LOG_OVERRIDE"
        ),
    }
    db_metrics = {
        "metrics_enabled": _first_non_empty(env, "DB_METRICS__ENABLED", "DB_QUERY_METRICS_ENABLED"),
        "slow_query_threshold_ms": _first_non_empty(
            env, "DB_METRICS__SLOW_QUERY_THRESHOLD_MS", "DB_SLOW_QUERY_THRESHOLD_MS"
        ),
    }
    insights = {
        "window_days": _first_non_empty(env, "INSIGHTS__WINDOW_DAYS", "INSIGHTS_WINDOW_DAYS"),
        "fetch_timeout_seconds": _first_non_empty(
            env, "INSIGHTS__FETCH_TIMEOUT_SECONDS", "INSIGHTS_FETCH_TIMEOUT_SECONDS"
        ),
    }
    discovery = {
        "adapters": _first_non_empty(env, "DISCOVERY__ADAPTERS", "DISCOVERY_ADAPTERS"),
        "adapter_timeout_seconds": _first_non_empty(
            env, "DISCOVERY__ADAPTER_TIMEOUT_SECONDS", "DISCOVERY_ADAPTER_TIMEOUT_SECONDS"
        ),
        "max_candidates_per_run": _first_non_empty(
            env, "DISCOVERY__MAX_CANDIDATES_PER_RUN", "DISCOVERY_MAX_CANDIDATES_PER_RUN"
        ),
        "messari_url": _first_non_empty(env, "DISCOVERY__MESSARI_URL", "MESSARI_URL"),
        "messari_api_key": _first_non_empty(env, "DISCOVERY__MESSARI_API_KEY", "MESSARI_API_KEY"),
    }
    return {
        "db": {k: v for k, v in db.items() if v is not None},
        "api": {k: v for k, v in api.items() if v is not None},
        "logging": {k: v for k, v in logging_settings.items() if v is not None},
        "db_metrics": {k: v for k, v in db_metrics.items() if v is not None},
        "insights": {k: v for k, v in insights.items() if v is not None},
        "discovery": {k: v for k, v in discovery.items() if v is not None},
    }


_SETTINGS_LOCK = Lock()
_SETTINGS_CACHE: Settings | None = None


def get_settings(*, reload: bool = False) -> Settings:
    """Return cached settings, optionally forcing reload from env."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        if reload or _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = Settings.from_env()
        return _SETTINGS_CACHE


def clear_settings_cache() -> None:
    """Clear in-process settings cache."""
    global _SETTINGS_CACHE
    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None


__all__ = [
    "APIConfig",
    "DatabaseConfig",
    "DbMetricsConfig",
    "DiscoveryConfigSettings",
    "InsightsConfig",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "ValidationError",
]
