"""Configuration management."""

from .loader import ConfigLoader
from .schema import Config, LoggingConfig, PipeDefaults

__all__ = [
    "ConfigLoader",
    "Config",
    "LoggingConfig",
    "PipeDefaults",
]
