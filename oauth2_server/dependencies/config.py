"""
FastAPI dependency utilities for injecting configuration.
"""

from functools import lru_cache

from fastapi import Depends

from oauth2_server.core.config import AppSettings, OAuthSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_oauth_settings(settings: AppSettings = Depends(get_app_settings)) -> OAuthSettings:
    """Protocol settings only, for routes that do not need the rest."""
    return settings.oauth


SettingsDependency = Depends(get_app_settings)

__all__ = ["SettingsDependency", "get_app_settings", "get_oauth_settings"]
