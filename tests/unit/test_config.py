"""
Unit tests for bootstrap/config.py and bootstrap/app.py
"""

import json
import pytest

from defcache.bootstrap.app import CacheApp, create_store
from defcache.bootstrap.config import CacheConfig, get_config, load_config, reset_config
from defcache.errors import ConfigurationError
from defcache.storage.file_store import JsonFileStore
from defcache.storage.memory import MemoryStore


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    for name in (
        "DEFCACHE_STORAGE_BACKEND",
        "DEFCACHE_GRAPH_EVICTION",
        "DEFCACHE_DEFS_MAX_SIZE_KB",
        "DEFCACHE_BOOTSTRAP_ACTIONS",
        "DEFCACHE_EVICTION_TARGET_LOAD",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestCacheConfig:
    """Test configuration loading."""

    def test_defaults(self):
        config = CacheConfig()
        assert config.storage.backend == "memory"
        assert config.eviction.target_load == 0.6
        assert config.eviction.headroom == 0.1
        assert config.eviction.graph_eviction_enabled is False
        assert "globalValueProviders" in config.eviction.bootstrap_action_prefixes

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DEFCACHE_GRAPH_EVICTION", "true")
        monkeypatch.setenv("DEFCACHE_DEFS_MAX_SIZE_KB", "512")
        monkeypatch.setenv("DEFCACHE_BOOTSTRAP_ACTIONS", "boot:a,boot:b")

        config = CacheConfig.from_env()

        assert config.eviction.graph_eviction_enabled is True
        assert config.storage.defs_max_size_kb == 512.0
        assert config.eviction.bootstrap_action_prefixes == ["boot:a", "boot:b"]

    def test_from_file(self, tmp_path):
        path = tmp_path / "defcache.json"
        path.write_text(json.dumps({
            "environment": "test",
            "storage": {"backend": "file", "base_dir": str(tmp_path)},
            "eviction": {"graph_eviction_enabled": True},
        }))

        config = CacheConfig.from_file(str(path))

        assert config.environment == "test"
        assert config.storage.backend == "file"
        assert config.eviction.graph_eviction_enabled is True

    def test_from_missing_file_uses_env(self, tmp_path):
        config = CacheConfig.from_file(str(tmp_path / "missing.json"))
        assert config.storage.backend == "memory"

    def test_unknown_key_ignored(self, tmp_path):
        path = tmp_path / "defcache.json"
        path.write_text(json.dumps({"eviction": {"load_factor": 0.5}}))
        config = CacheConfig.from_file(str(path))
        assert config.eviction.target_load == 0.6

    def test_invalid_file_values(self, tmp_path):
        path = tmp_path / "defcache.json"
        path.write_text(json.dumps({"storage": {"backend": "indexeddb"}}))
        with pytest.raises(ConfigurationError):
            CacheConfig.from_file(str(path))

    @pytest.mark.parametrize("section,key,value", [
        ("storage", "defs_max_size_kb", 0),
        ("eviction", "target_load", 0.0),
        ("eviction", "target_load", 1.2),
        ("eviction", "headroom", 1.0),
    ])
    def test_validate(self, section, key, value):
        config = CacheConfig()
        setattr(getattr(config, section), key, value)
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_to_dict(self):
        data = CacheConfig().to_dict()
        assert data["eviction"]["graph_eviction_enabled"] is False
        assert data["storage"]["backend"] == "memory"

    def test_load_and_get_config(self, tmp_path):
        path = tmp_path / "defcache.json"
        path.write_text(json.dumps({"environment": "staging"}))
        loaded = load_config(str(path))
        assert get_config() is loaded
        assert loaded.environment == "staging"


class TestCacheApp:
    """Test application assembly."""

    def test_memory_backend(self):
        app = CacheApp(CacheConfig())
        assert isinstance(app.storage.get_storage(), MemoryStore)
        assert app.storage.get_storage().name == "ComponentDefStorage"
        assert app.storage.get_action_storage().name == "actions"
        assert app.storage.gate is app.gate

    def test_file_backend(self, tmp_path):
        config = CacheConfig()
        config.storage.backend = "file"
        config.storage.base_dir = str(tmp_path)
        store = create_store(config, "defs", 16.0)
        assert isinstance(store, JsonFileStore)
        assert store.path == tmp_path / "defs.json"

    def test_actions_disabled(self):
        config = CacheConfig()
        config.storage.enable_actions = False
        assert CacheApp(config).storage.get_action_storage() is None

    def test_eviction_settings_applied(self):
        config = CacheConfig()
        config.eviction.graph_eviction_enabled = True
        config.eviction.target_load = 0.5
        app = CacheApp(config)
        assert app.service.graph_eviction_enabled is True
        assert app.service.budget.target_load == 0.5

    def test_invalid_config_rejected(self):
        config = CacheConfig()
        config.storage.backend = "sqlite"
        with pytest.raises(ConfigurationError):
            CacheApp(config)
