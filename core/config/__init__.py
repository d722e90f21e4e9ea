"""
Configuration module for the Condition Advisor service.

Provides:
- AppConfig: Pydantic model holding every subsystem's settings
- get_app_config: Thread-safe singleton loaded from the environment
"""

from .app_config import AppConfig, get_app_config, load_app_config_from_env, reset_app_config

__all__ = [
    "AppConfig",
    "get_app_config",
    "load_app_config_from_env",
    "reset_app_config",
]
