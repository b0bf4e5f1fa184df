"""
bootstrap/ - Bootstrap Layer

Configuration, application assembly and entry points.
"""

from .config import (
    StorageConfig,
    EvictionConfig,
    APIConfig,
    LoggingConfig,
    CacheConfig,
    load_config,
    get_config,
    reset_config,
)
from .app import CacheApp, create_store
from .entrypoints import setup_logging, cli_main, api_main, main

__all__ = [
    "StorageConfig",
    "EvictionConfig",
    "APIConfig",
    "LoggingConfig",
    "CacheConfig",
    "load_config",
    "get_config",
    "reset_config",
    "CacheApp",
    "create_store",
    "setup_logging",
    "cli_main",
    "api_main",
    "main",
]
