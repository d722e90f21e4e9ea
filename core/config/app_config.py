"""
Unified Application Configuration - Single Source of Truth

Pydantic-based configuration for the entire application:
- Database Settings (backend selection, connection details)
- API Settings (host, port, request timeout)
- ApiMedic Settings (credentials, auth/health service URLs)
- Scraper Settings (knowledge source URLs, timeouts)
- Proxy Settings (optional outbound HTTP proxy)

Environment Variables (highest priority override):
    APP_ENV: 'development' | 'staging' | 'production'
    DB_BACKEND: 'postgres' | 'inmemory'
    DB_HOST, DB_PORT, DB_USER, DB_PASSWORD, DB_NAME
    APIMEDIC_USERNAME, APIMEDIC_PASSWORD
    APIMEDIC_AUTH_URL: 'https://sandbox-authservice.priaid.ch/login'
    APIMEDIC_HEALTH_URL: 'https://sandbox-healthservice.priaid.ch'
    PROXY_ENABLED: 'true' | 'false'
    PROXY_HOST, PROXY_PORT, PROXY_USERNAME, PROXY_PASSWORD

Usage:
    from core.config.app_config import AppConfig, get_app_config

    config = get_app_config()
    print(config.database.backend)    # 'postgres'
    print(config.apimedic.language)   # 'en-gb'
"""

import os
import logging
import threading
from typing import Optional, Literal
from urllib.parse import quote
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class DatabaseConfig(BaseModel):
    """Database settings."""

    model_config = ConfigDict(extra="forbid")

    backend: Literal["postgres", "inmemory"] = Field(
        default="postgres",
        description="Condition store backend"
    )
    host: str = Field(default="localhost", description="DB host")
    port: int = Field(default=5432, ge=1, le=65535, description="DB port")
    user: str = Field(default="postgres", description="DB user")
    password: str = Field(default="", description="DB password")
    database: str = Field(default="condition_advisor", description="Database name")
    pool_min_size: int = Field(default=2, ge=1, le=100, description="Minimum pooled connections")
    pool_max_size: int = Field(default=10, ge=1, le=100, description="Maximum pooled connections")


class APIConfig(BaseModel):
    """API server settings."""

    model_config = ConfigDict(extra="forbid")

    host: str = Field(default="0.0.0.0", description="API bind host")
    port: int = Field(default=8000, ge=1, le=65535, description="API bind port")
    reload: bool = Field(default=False, description="Hot reload in development")
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Per-request timeout enforced by middleware"
    )


class ApiMedicConfig(BaseModel):
    """ApiMedic (priaid) diagnosis service settings."""

    model_config = ConfigDict(extra="forbid")

    username: str = Field(default="", description="ApiMedic API username")
    password: str = Field(default="", description="ApiMedic API secret key")
    auth_url: str = Field(
        default="https://sandbox-authservice.priaid.ch/login",
        description="Login endpoint of the auth service"
    )
    health_url: str = Field(
        default="https://sandbox-healthservice.priaid.ch",
        description="Base URL of the health service"
    )
    language: str = Field(default="en-gb", description="Response language")
    timeout_seconds: float = Field(default=15.0, gt=0, le=120, description="Request timeout in seconds")


class ScraperConfig(BaseModel):
    """Knowledge source scraping settings."""

    model_config = ConfigDict(extra="forbid")

    wikipedia_url: str = Field(
        default="https://en.wikipedia.org/wiki/",
        description="Base URL for condition articles"
    )
    emedexpert_url: str = Field(
        default="https://www.emedexpert.com/lists/conditions.shtml",
        description="Page listing medications per condition"
    )
    user_agent: str = Field(
        default="Mozilla/5.0 (compatible; ConditionAdvisor/1.0)",
        description="User-Agent header sent to knowledge sources"
    )
    timeout_seconds: float = Field(default=20.0, gt=0, le=120, description="Request timeout in seconds")


class ProxyConfig(BaseModel):
    """Outbound HTTP proxy settings (for deployments behind a proxy server)."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(default=False, description="Route outbound requests through the proxy")
    host: str = Field(default="", description="Proxy host")
    port: int = Field(default=3128, ge=1, le=65535, description="Proxy port")
    username: str = Field(default="", description="Proxy username")
    password: str = Field(default="", description="Proxy password")

    @property
    def url(self) -> Optional[str]:
        """Proxy URL for httpx, or None when disabled."""
        if not self.enabled or not self.host:
            return None
        auth = ""
        if self.username:
            auth = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}@"
        return f"http://{auth}{self.host}:{self.port}"


class AppConfig(BaseModel):
    """Complete application configuration - single source of truth."""

    model_config = ConfigDict(extra="forbid")

    # Environment
    env: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )

    # Subsystems
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    apimedic: ApiMedicConfig = Field(default_factory=ApiMedicConfig)
    scraper: ScraperConfig = Field(default_factory=ScraperConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)

    @field_validator("env", mode="before")
    @classmethod
    def validate_env(cls, v):
        if isinstance(v, str):
            return Environment(v.lower())
        return v


# Global instance with thread safety
_global_app_config: Optional[AppConfig] = None
_config_lock = threading.RLock()


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).lower() == "true"


def load_app_config_from_env() -> AppConfig:
    """Build an AppConfig from environment variables with defaults."""
    env_dict = {
        "env": os.environ.get("APP_ENV", "development"),
        "database": {
            "backend": os.environ.get("DB_BACKEND", "postgres"),
            "host": os.environ.get("DB_HOST", "localhost"),
            "port": int(os.environ.get("DB_PORT", "5432")),
            "user": os.environ.get("DB_USER", "postgres"),
            "password": os.environ.get("DB_PASSWORD", ""),
            "database": os.environ.get("DB_NAME", "condition_advisor"),
            "pool_min_size": int(os.environ.get("DB_POOL_MIN_SIZE", "2")),
            "pool_max_size": int(os.environ.get("DB_POOL_MAX_SIZE", "10")),
        },
        "api": {
            "host": os.environ.get("API_HOST", "0.0.0.0"),
            "port": int(os.environ.get("API_PORT", "8000")),
            "reload": _env_bool("API_RELOAD", "false"),
            "request_timeout_seconds": float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "60")),
        },
        "apimedic": {
            "username": os.environ.get("APIMEDIC_USERNAME", ""),
            "password": os.environ.get("APIMEDIC_PASSWORD", ""),
            "auth_url": os.environ.get("APIMEDIC_AUTH_URL", "https://sandbox-authservice.priaid.ch/login"),
            "health_url": os.environ.get("APIMEDIC_HEALTH_URL", "https://sandbox-healthservice.priaid.ch"),
            "language": os.environ.get("APIMEDIC_LANGUAGE", "en-gb"),
            "timeout_seconds": float(os.environ.get("APIMEDIC_TIMEOUT", "15")),
        },
        "scraper": {
            "wikipedia_url": os.environ.get("WIKIPEDIA_URL", "https://en.wikipedia.org/wiki/"),
            "emedexpert_url": os.environ.get(
                "EMEDEXPERT_URL", "https://www.emedexpert.com/lists/conditions.shtml"
            ),
            "user_agent": os.environ.get("SCRAPER_USER_AGENT", "Mozilla/5.0 (compatible; ConditionAdvisor/1.0)"),
            "timeout_seconds": float(os.environ.get("SCRAPER_TIMEOUT", "20")),
        },
        "proxy": {
            "enabled": _env_bool("PROXY_ENABLED", "false"),
            "host": os.environ.get("PROXY_HOST", ""),
            "port": int(os.environ.get("PROXY_PORT", "3128")),
            "username": os.environ.get("PROXY_USERNAME", ""),
            "password": os.environ.get("PROXY_PASSWORD", ""),
        },
    }
    return AppConfig(**env_dict)


def get_app_config() -> AppConfig:
    """
    Get or create the global AppConfig instance.

    Loads from environment variables with smart defaults.
    Thread-safe singleton pattern.

    Returns:
        AppConfig singleton

    Example:
        config = get_app_config()
        print(config.database.backend)      # 'postgres'
        print(config.apimedic.health_url)   # 'https://sandbox-healthservice.priaid.ch'
    """
    global _global_app_config

    if _global_app_config is None:
        with _config_lock:
            if _global_app_config is None:
                # Load .env file if it exists
                load_dotenv()

                try:
                    _global_app_config = load_app_config_from_env()
                    logger.info(
                        f"✅ AppConfig loaded: env={_global_app_config.env.value}, "
                        f"db={_global_app_config.database.backend}:{_global_app_config.database.port}, "
                        f"proxy={'on' if _global_app_config.proxy.url else 'off'}"
                    )
                except Exception as e:
                    logger.error(f"❌ Failed to load AppConfig: {e}")
                    raise

    return _global_app_config


def reset_app_config():
    """Reset global config (for testing)."""
    global _global_app_config
    with _config_lock:
        _global_app_config = None
