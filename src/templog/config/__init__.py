"""Configuration loading for templog."""

from .settings import ConfigError, Settings, generate_example_env, load_settings

__all__ = [
    "ConfigError",
    "Settings",
    "generate_example_env",
    "load_settings",
]
