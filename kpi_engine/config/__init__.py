"""Configuration and read-only data tables."""

from .loader import ConfigError, load_settings
from .tables import EngineTables, load_tables

__all__ = [
    "ConfigError",
    "EngineTables",
    "load_settings",
    "load_tables",
]
