"""
Configuration management with typed Pydantic models.

Provides environment-aware configuration loading from YAML.
"""

from housecast.config.loader import load_config
from housecast.config.settings import (
    AppConfig,
    DataConfig,
    LoggingConfig,
    StoreBackend,
    StoreConfig,
    TrainingConfig,
)

__all__ = [
    "AppConfig",
    "DataConfig",
    "LoggingConfig",
    "StoreBackend",
    "StoreConfig",
    "TrainingConfig",
    "load_config",
]
