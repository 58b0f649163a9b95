"""
Per-environment configuration, selected by the APP_ENV variable
"""

import os
from config.app_config import AppConfig


def get_environment_config() -> AppConfig:
    """
    Build the configuration for APP_ENV

    "development" (the default) and "production" have their own overrides;
    any other value gets the plain base configuration.
    """
    env = os.getenv("APP_ENV", "development").strip().lower()

    if env == "production":
        from .production import get_production_config
        return get_production_config()
    if env == "development":
        from .development import get_development_config
        return get_development_config()

    return AppConfig.load()
