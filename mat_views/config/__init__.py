"""Configuration package for runtime settings and startup validation."""

from .settings import (
    AppSettings,
    JobRuntimeConfig,
    SettingsLoadError,
    config_build_job_runtime,
    config_load_database_url,
    config_load_settings,
)

__all__ = [
    "AppSettings",
    "JobRuntimeConfig",
    "SettingsLoadError",
    "config_build_job_runtime",
    "config_load_settings",
    "config_load_database_url",
]
