"""
bootstrap/config.py - Cache configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pathlib import Path
import os
import json
import logging

from defcache.core.constants import (
    BOOTSTRAP_ACTION_PREFIXES,
    DEFAULT_ACTIONS_MAX_SIZE_KB,
    DEFAULT_DEFS_MAX_SIZE_KB,
    EVICTION_HEADROOM,
    EVICTION_TARGET_LOAD,
)
from defcache.errors import ConfigurationError

logger = logging.getLogger("bootstrap.config")

STORAGE_BACKENDS = ("memory", "file")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class StorageConfig:
    """Record store configuration."""

    backend: str = "memory"
    base_dir: str = "./storage/defcache"
    persistent: bool = True
    defs_max_size_kb: float = DEFAULT_DEFS_MAX_SIZE_KB
    actions_max_size_kb: float = DEFAULT_ACTIONS_MAX_SIZE_KB
    enable_actions: bool = True
    default_expiration_s: Optional[float] = None

    @classmethod
    def from_env(cls) -> "StorageConfig":
        expiration = os.getenv("DEFCACHE_STORAGE_EXPIRATION_S")
        return cls(
            backend=os.getenv("DEFCACHE_STORAGE_BACKEND", "memory"),
            base_dir=os.getenv("DEFCACHE_STORAGE_DIR", "./storage/defcache"),
            persistent=_env_bool("DEFCACHE_STORAGE_PERSISTENT", "true"),
            defs_max_size_kb=float(os.getenv("DEFCACHE_DEFS_MAX_SIZE_KB", str(DEFAULT_DEFS_MAX_SIZE_KB))),
            actions_max_size_kb=float(os.getenv("DEFCACHE_ACTIONS_MAX_SIZE_KB", str(DEFAULT_ACTIONS_MAX_SIZE_KB))),
            enable_actions=_env_bool("DEFCACHE_ENABLE_ACTIONS", "true"),
            default_expiration_s=float(expiration) if expiration else None,
        )


@dataclass
class EvictionConfig:
    """Eviction configuration. Fractions are of the definition store's max size."""

    target_load: float = EVICTION_TARGET_LOAD
    headroom: float = EVICTION_HEADROOM
    # Off: running out of space clears the whole store
    graph_eviction_enabled: bool = False
    bootstrap_action_prefixes: List[str] = field(default_factory=lambda: list(BOOTSTRAP_ACTION_PREFIXES))
    log_max_entries: int = 1000

    @classmethod
    def from_env(cls) -> "EvictionConfig":
        prefixes = os.getenv("DEFCACHE_BOOTSTRAP_ACTIONS")
        return cls(
            target_load=float(os.getenv("DEFCACHE_EVICTION_TARGET_LOAD", str(EVICTION_TARGET_LOAD))),
            headroom=float(os.getenv("DEFCACHE_EVICTION_HEADROOM", str(EVICTION_HEADROOM))),
            graph_eviction_enabled=_env_bool("DEFCACHE_GRAPH_EVICTION", "false"),
            bootstrap_action_prefixes=prefixes.split(",") if prefixes else list(BOOTSTRAP_ACTION_PREFIXES),
            log_max_entries=int(os.getenv("DEFCACHE_EVICTION_LOG_MAX", "1000")),
        )


@dataclass
class APIConfig:
    """Diagnostics API configuration."""

    host: str = "127.0.0.1"
    port: int = 8731
    enable_docs: bool = True
    docs_url: str = "/docs"

    @classmethod
    def from_env(cls) -> "APIConfig":
        return cls(
            host=os.getenv("DEFCACHE_API_HOST", "127.0.0.1"),
            port=int(os.getenv("DEFCACHE_API_PORT", "8731")),
            enable_docs=_env_bool("DEFCACHE_API_ENABLE_DOCS", "true"),
            docs_url=os.getenv("DEFCACHE_API_DOCS_URL", "/docs"),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("DEFCACHE_LOG_LEVEL", "INFO"),
            format=os.getenv("DEFCACHE_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("DEFCACHE_LOG_FILE"),
            json_logs=_env_bool("DEFCACHE_JSON_LOGS", "false"),
        )


@dataclass
class CacheConfig:
    """Root configuration for the definition cache."""

    environment: str = "development"
    version: str = "1.0.0"

    storage: StorageConfig = field(default_factory=StorageConfig)
    eviction: EvictionConfig = field(default_factory=EvictionConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Create configuration from environment variables."""
        return cls(
            environment=os.getenv("DEFCACHE_ENVIRONMENT", "development"),
            storage=StorageConfig.from_env(),
            eviction=EvictionConfig.from_env(),
            api=APIConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "CacheConfig":
        """Load configuration from JSON file, on top of the environment."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        config = cls.from_env()

        if "environment" in data:
            config.environment = data["environment"]

        for section in ("storage", "eviction", "api", "logging"):
            target = getattr(config, section)
            for key, value in data.get(section, {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Unknown config key: {section}.{key}")

        config.validate()
        return config

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: On values the cache cannot run with
        """
        if self.storage.backend not in STORAGE_BACKENDS:
            raise ConfigurationError(
                f"Unknown storage backend {self.storage.backend!r}, expected one of {STORAGE_BACKENDS}",
                source="bootstrap.config",
            )
        if self.storage.defs_max_size_kb <= 0:
            raise ConfigurationError("storage.defs_max_size_kb must be positive", source="bootstrap.config")
        if not 0.0 < self.eviction.target_load <= 1.0:
            raise ConfigurationError("eviction.target_load must be in (0, 1]", source="bootstrap.config")
        if not 0.0 <= self.eviction.headroom < 1.0:
            raise ConfigurationError("eviction.headroom must be in [0, 1)", source="bootstrap.config")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "environment": self.environment,
            "version": self.version,
            "storage": {
                "backend": self.storage.backend,
                "base_dir": self.storage.base_dir,
                "persistent": self.storage.persistent,
                "defs_max_size_kb": self.storage.defs_max_size_kb,
                "actions_max_size_kb": self.storage.actions_max_size_kb,
                "enable_actions": self.storage.enable_actions,
            },
            "eviction": {
                "target_load": self.eviction.target_load,
                "headroom": self.eviction.headroom,
                "graph_eviction_enabled": self.eviction.graph_eviction_enabled,
                "bootstrap_action_prefixes": list(self.eviction.bootstrap_action_prefixes),
            },
            "api": {
                "host": self.api.host,
                "port": self.api.port,
            },
            "logging": {
                "level": self.logging.level,
                "json_logs": self.logging.json_logs,
            },
        }


# Global config instance
_config: Optional[CacheConfig] = None


def load_config(filepath: str = None) -> CacheConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        CacheConfig instance
    """
    global _config

    if filepath:
        _config = CacheConfig.from_file(filepath)
    else:
        default_paths = [
            "./defcache.json",
            "./config/defcache.json",
            os.path.expanduser("~/.defcache/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = CacheConfig.from_file(path)
                return _config

        _config = CacheConfig.from_env()
        _config.validate()

    logger.info(f"Configuration loaded: environment={_config.environment}")
    return _config


def get_config() -> CacheConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    global _config
    _config = None
