"""
Tests for configuration management and logging setup.
"""

import logging

import yaml

from verihub.utils import DEFAULT_CONFIG, ConfigManager, merge_dicts, setup_logging


class TestConfigManager:

    def test_defaults(self):
        config = ConfigManager()
        assert config.get("storage.backend") == "memory"
        assert config.get("web.port") == 8080
        assert config.get("data.dir") is None
        assert config.path("data.dir") is None

    def test_missing_key_returns_default(self):
        assert ConfigManager().get("nope.deeper", "fallback") == "fallback"

    def test_load_merges_over_defaults(self, tmp_path):
        path = tmp_path / "verihub.yaml"
        path.write_text("storage:\n  backend: sqlite\nweb:\n  port: 9000\n", encoding="utf-8")

        config = ConfigManager(path)

        assert config.get("storage.backend") == "sqlite"
        assert config.get("storage.sqlite_path") == DEFAULT_CONFIG["storage"]["sqlite_path"]
        assert config.get("web.port") == 9000
        assert config.get("web.host") == "127.0.0.1"

    def test_missing_file_uses_defaults(self, tmp_path):
        assert ConfigManager(tmp_path / "absent.yaml").to_dict() == DEFAULT_CONFIG

    def test_non_mapping_file_ignored(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        assert ConfigManager(path).to_dict() == DEFAULT_CONFIG

    def test_set_and_save(self, tmp_path):
        config = ConfigManager()
        config.set("rules.path", "custom.yaml")
        config.set("new.section.value", 3)

        out = tmp_path / "saved.yaml"
        config.save_config(out)
        saved = yaml.safe_load(out.read_text(encoding="utf-8"))

        assert saved["rules"]["path"] == "custom.yaml"
        assert saved["new"]["section"]["value"] == 3
        assert str(config.path("rules.path")) == "custom.yaml"

    def test_to_dict_is_a_copy(self):
        config = ConfigManager()
        config.to_dict()["storage"]["backend"] = "sqlite"
        assert config.get("storage.backend") == "memory"


class TestMergeDicts:

    def test_deep_merge_does_not_mutate(self):
        base = {"a": {"b": 1, "c": [1]}}
        merged = merge_dicts(base, {"a": {"c": [2]}})
        assert merged == {"a": {"b": 1, "c": [2]}}
        assert base == {"a": {"b": 1, "c": [1]}}


class TestSetupLogging:

    def test_verbose_enables_debug(self):
        setup_logging(verbose=True)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("werkzeug").level == logging.WARNING

    def test_level_name(self):
        setup_logging("warning")
        assert logging.getLogger().level == logging.WARNING
