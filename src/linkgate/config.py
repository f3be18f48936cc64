"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
An optional config.yaml provides defaults that environment variables override.
"""

import json
import os
import yaml
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        # Look for config.yaml in common locations
        possible_paths = [
            "config.yaml",  # Current directory
            "../../config.yaml",  # Project root from src/linkgate
        ]

        for path in possible_paths:
            if os.path.exists(path):
                config_path = path
                break
        else:
            return {}

    if os.path.exists(config_path):
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}
            return config_data
    return {}


def _parse_str_list(v: Any) -> List[str]:
    """Accept a list, a JSON array string or a comma separated string."""
    if isinstance(v, str):
        text = v.strip()
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                return []
            return [str(item) for item in parsed] if isinstance(parsed, list) else []
        return [part.strip() for part in text.split(",") if part.strip()]
    if isinstance(v, (list, tuple, set)):
        return [str(item) for item in v]
    return []


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    access_keys: List[str] = Field(default_factory=list, description="Pre-shared keys granting privileged sessions")
    auth_rate_limit_enabled: bool = Field(default=False, description="Rate limit POST /auth per client")
    auth_rate_limit_rps: int = Field(default=1, description="Auth attempts refilled per second per client")
    auth_rate_limit_burst: int = Field(default=10, description="Auth attempt burst capacity per client")
    auth_rate_limit_max_clients: int = Field(default=10000, gt=0, description="Client buckets kept before the least recently seen is dropped")
    cors_origins: List[str] = Field(default=["*"], description="Allowed CORS origins")

    @field_validator("access_keys", "cors_origins", mode="before")
    def parse_lists(cls, v: Any) -> List[str]:
        """Parse list values from env strings if needed."""
        return _parse_str_list(v)

    class Config:
        env_prefix = "LINKGATE_SECURITY_"


class SessionSettings(BaseSettings):
    """Session lifetime and retention."""

    public_ttl_seconds: int = Field(default=900, gt=0, description="Anonymous session lifetime (15 min)")
    privileged_ttl_seconds: int = Field(default=3600, gt=0, description="Key-authenticated session lifetime (1h)")
    max_sessions: int = Field(default=100, gt=0, description="Most recent sessions retained")

    class Config:
        env_prefix = "LINKGATE_SESSION_"


class LinkSettings(BaseSettings):
    """Opaque link vault configuration."""

    ttl_seconds: int = Field(default=3600, gt=0, description="Lifetime of a minted link mapping")
    trusted_domains: List[str] = Field(
        default=["fast-dl.lol", "fastdl.lol", "vcloud.zip", "vclzip.online"],
        description="Hosts whose links are extracted from content bodies"
    )
    sweep_interval_seconds: int = Field(
        default=0,
        ge=0,
        description="Interval of the expired-link sweep (0 disables it)"
    )

    @field_validator("trusted_domains", mode="before")
    def parse_domains(cls, v: Any) -> List[str]:
        """Parse domain list from env strings if needed."""
        return _parse_str_list(v)

    class Config:
        env_prefix = "LINKGATE_LINKS_"


class ContentSettings(BaseSettings):
    """Upstream content source configuration."""

    base_url: str = Field(
        default="https://seashell-whale-304753.hostingersite.com/wp-json/wp/v2",
        description="WordPress REST API base URL"
    )
    timeout_seconds: float = Field(default=10.0, gt=0, description="Request timeout")
    per_page: int = Field(default=15, gt=0, description="Maximum search results")

    class Config:
        env_prefix = "LINKGATE_CONTENT_"


class StoreSettings(BaseSettings):
    """Key-value store backend configuration."""

    backend: str = Field(default="memory", description="Store backend: memory or file")
    path: Path = Field(default=Path("./data/linkgate.json"), description="JSON document for the file backend")

    @field_validator("backend")
    def validate_backend(cls, v: str) -> str:
        """Only known backends are accepted."""
        v = v.lower()
        if v not in ("memory", "file"):
            raise ValueError(f"Unknown store backend '{v}'")
        return v

    class Config:
        env_prefix = "LINKGATE_STORE_"


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")

    # Component settings
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    links: LinkSettings = Field(default_factory=LinkSettings)
    content: ContentSettings = Field(default_factory=ContentSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)

    class Config:
        env_prefix = "LINKGATE_"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""

    # Load config file data
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    settings = Settings()
    return settings


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "LINKGATE_HOST",
        ("server", "port"): "LINKGATE_PORT",
        ("server", "debug"): "LINKGATE_DEBUG",
        ("server", "log_level"): "LINKGATE_LOG_LEVEL",
        ("security", "auth_rate_limit_enabled"): "LINKGATE_SECURITY_AUTH_RATE_LIMIT_ENABLED",
        ("security", "auth_rate_limit_rps"): "LINKGATE_SECURITY_AUTH_RATE_LIMIT_RPS",
        ("security", "auth_rate_limit_burst"): "LINKGATE_SECURITY_AUTH_RATE_LIMIT_BURST",
        ("security", "auth_rate_limit_max_clients"): "LINKGATE_SECURITY_AUTH_RATE_LIMIT_MAX_CLIENTS",
        ("session", "public_ttl_seconds"): "LINKGATE_SESSION_PUBLIC_TTL_SECONDS",
        ("session", "privileged_ttl_seconds"): "LINKGATE_SESSION_PRIVILEGED_TTL_SECONDS",
        ("session", "max_sessions"): "LINKGATE_SESSION_MAX_SESSIONS",
        ("links", "ttl_seconds"): "LINKGATE_LINKS_TTL_SECONDS",
        ("links", "sweep_interval_seconds"): "LINKGATE_LINKS_SWEEP_INTERVAL_SECONDS",
        ("content", "base_url"): "LINKGATE_CONTENT_BASE_URL",
        ("content", "timeout_seconds"): "LINKGATE_CONTENT_TIMEOUT_SECONDS",
        ("content", "per_page"): "LINKGATE_CONTENT_PER_PAGE",
        ("store", "backend"): "LINKGATE_STORE_BACKEND",
        ("store", "path"): "LINKGATE_STORE_PATH",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)

    # List values are passed through as JSON strings
    list_mappings = {
        ("security", "access_keys"): "LINKGATE_SECURITY_ACCESS_KEYS",
        ("security", "cors_origins"): "LINKGATE_SECURITY_CORS_ORIGINS",
        ("links", "trusted_domains"): "LINKGATE_LINKS_TRUSTED_DOMAINS",
    }

    for (section, key), env_var in list_mappings.items():
        if env_var not in os.environ:
            value = (config_data.get(section) or {}).get(key)
            if value:
                os.environ[env_var] = json.dumps(value)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
