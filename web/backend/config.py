#!/usr/bin/env python3
"""
Configuration management for the LobbyMatch web application.

The YAML file and environment overrides are handled by core.config_loader;
this module only caches the result for the web process.
"""

from pathlib import Path
from functools import lru_cache

from core.config_loader import AppConfig, load_config


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


@lru_cache()
def get_config() -> AppConfig:
    """
    Get application configuration with caching.

    Loads from YAML file and applies environment variable overrides.
    Result is cached for performance.

    Returns:
        AppConfig: The application configuration.
    """
    return load_config(str(get_project_root() / 'config.yaml'))
