"""Application configuration: defaults, an optional TOML file and environment overrides."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from .models import ConfigurationError, ValidationConfig

ENV_PREFIX = "EMAIL_API_"
DEFAULT_CONFIG_FILE = "Config.toml"
_MAX_PORT = 65535


@dataclass
class ServerConfig:
    """HTTP server settings."""

    host: str = "0.0.0.0"
    port: int = 3000
    max_connections: int = 1000
    request_timeout_secs: int = 30
    graceful_shutdown: bool = True
    shutdown_timeout_secs: int = 30

    def __post_init__(self) -> None:
        if not 0 <= self.port <= _MAX_PORT:
            raise ConfigurationError(f"port out of range: {self.port}")


@dataclass
class ValidationSettings:
    """Validation pipeline settings."""

    dns_timeout_ms: int = 500
    dns_attempts: int = 2
    dns_cache_size: int = 10_000
    dns_min_ttl_secs: int = 60
    bloom_filter_fp_rate: float = 0.0001
    enable_smtp_probe: bool = True
    enable_dmarc_analysis: bool = True
    smtp_timeout_ms: int = 2000

    def to_validation_config(self) -> ValidationConfig:
        """The pipeline configuration these settings describe."""
        return ValidationConfig(
            dns_timeout_ms=self.dns_timeout_ms,
            dns_attempts=self.dns_attempts,
            dns_cache_size=self.dns_cache_size,
            dns_min_ttl_secs=self.dns_min_ttl_secs,
            bloom_filter_fp_rate=self.bloom_filter_fp_rate,
            enable_smtp_probe=self.enable_smtp_probe,
            enable_dmarc_analysis=self.enable_dmarc_analysis,
        )


@dataclass
class ObservabilityConfig:
    """Logging, tracing and metrics settings."""

    json_logs: bool = False
    log_level: str = "info"
    enable_tracing: bool = True
    otlp_endpoint: str | None = None
    service_name: str = "email-validator-api"
    enable_metrics: bool = True
    metrics_namespace: str = "email_validator"


@dataclass
class SecurityConfig:
    """Rate limiting, body limits, CORS and privacy settings."""

    enable_rate_limiting: bool = False
    rate_limit_rpm: int = 60
    rate_limit_burst: int = 10
    enable_body_limits: bool = True
    max_body_size_bytes: int = 1024
    enable_cors: bool = True
    cors_origins: list[str] = field(default_factory=list)
    privacy_salt: str | None = None


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Convert a raw configuration value to the type of the field's default."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ConfigurationError(f"{name} must be a boolean, got {value!r}")
    if isinstance(default, int):
        if isinstance(value, bool):
            raise ConfigurationError(f"{name} must be an integer, got {value!r}")
        try:
            number = int(value.strip()) if isinstance(value, str) else value
        except ValueError:
            raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None
        if not isinstance(number, int) or number < 0:
            raise ConfigurationError(f"{name} must be a non-negative integer, got {value!r}")
        return number
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                pass
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if isinstance(default, list):
        if isinstance(value, list) and all(isinstance(item, str) for item in value):
            return list(value)
        if isinstance(value, str):
            inner = value.strip().removeprefix("[").removesuffix("]")
            items = (item.strip().strip("\"'") for item in inner.split(","))
            return [item for item in items if item]
        raise ConfigurationError(f"{name} must be a list of strings, got {value!r}")
    if value is None and default is None:
        return None
    if isinstance(value, str):
        return value
    raise ConfigurationError(f"{name} must be a string, got {value!r}")


def _build(cls: type, data: Any) -> Any:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"expected a table for {cls.__name__}, got {data!r}")
    defaults = cls()
    values = {
        f.name: _coerce(f.name, data[f.name], getattr(defaults, f.name))
        for f in fields(cls)
        if f.name in data
    }
    return cls(**values)


@dataclass
class AppConfig:
    """The whole application configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)

    def to_dict(self) -> dict[str, Any]:
        """Return a plain nested mapping of this configuration."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AppConfig:
        """Build a configuration from a nested mapping; missing values take defaults."""
        sections = {
            "server": ServerConfig,
            "validation": ValidationSettings,
            "observability": ObservabilityConfig,
            "security": SecurityConfig,
        }
        return cls(
            **{
                name: _build(section, data[name])
                for name, section in sections.items()
                if name in data
            }
        )


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Nest prefixed variables by splitting their lower-cased names on every underscore."""
    overrides: dict[str, Any] = {}
    for key, value in sorted(environ.items()):
        if not key.upper().startswith(ENV_PREFIX):
            continue
        parts = [part for part in key[len(ENV_PREFIX):].lower().split("_") if part]
        if not parts:
            continue
        node = overrides
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[parts[-1]] = value
    return overrides


def load_config(
    path: str | os.PathLike[str] | None = DEFAULT_CONFIG_FILE,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load defaults, then the TOML file if it exists, then EMAIL_API_ variables."""
    data: dict[str, Any] = AppConfig().to_dict()

    if path is not None and Path(path).exists():
        try:
            with open(path, "rb") as handle:
                file_data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"invalid configuration file {path}: {exc}") from exc
        data = _deep_merge(data, file_data)

    env = os.environ if environ is None else environ
    data = _deep_merge(data, _env_overrides(env))
    return AppConfig.from_dict(data)