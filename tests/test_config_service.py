"""
Tests for the configuration service.
"""

import json

import yaml

from launchgrid.services.config_service import AppSettings, ConfigService
from launchgrid.services.event_bus import EventBus
from launchgrid.services.interfaces import Events


class TestDefaults:
    def test_defaults_without_file(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        assert config.get_setting("icons.cache_capacity") == 300
        assert config.get_setting("icons.max_concurrency") == 6
        assert config.get_setting("icons.max_pending") is None
        assert config.get_setting("icons.default_priority") == 10
        assert config.get_setting("icons.viewport_margin") == 240
        assert config.get_setting("icons.visibility_threshold") == 0.01
        assert config.get_setting("icons.synthetic_prefixes") == ["Script:"]
        assert config.get_data_dir() == temp_dir

    def test_unknown_setting_returns_default(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        assert config.get_setting("icons.nope", "fallback") == "fallback"
        assert config.get_setting("nope") is None

    def test_corrupt_file_falls_back(self, temp_dir, memory_logger):
        (temp_dir / "config.json").write_text("{not json", encoding="utf-8")
        config = ConfigService(memory_logger, temp_dir)
        assert config.load_config() == AppSettings().model_dump()
        assert memory_logger.get_entries("ERROR")

    def test_invalid_file_values_fall_back(self, temp_dir, memory_logger):
        (temp_dir / "config.json").write_text(json.dumps({"icons": {"max_concurrency": 0}}), encoding="utf-8")
        config = ConfigService(memory_logger, temp_dir)
        assert config.get_setting("icons.max_concurrency") == 6


class TestPersistence:
    def test_save_and_reload(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        data = config.load_config()
        data["icons"]["max_concurrency"] = 3
        data["ui"]["columns"] = 8
        assert config.save_config(data)

        reloaded = ConfigService(memory_logger, temp_dir)
        assert reloaded.get_icon_settings().max_concurrency == 3
        assert reloaded.get_ui_settings().columns == 8

    def test_invalid_config_rejected(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        assert not config.save_config({"icons": {"cache_capacity": 0}})
        assert config.get_setting("icons.cache_capacity") == 300
        assert not (temp_dir / "config.json").exists()

    def test_save_publishes_change(self, temp_dir, memory_logger):
        bus = EventBus(memory_logger)
        config = ConfigService(memory_logger, temp_dir, bus)
        assert config.save_config(config.load_config())
        history = bus.get_event_history(Events.CONFIG_CHANGED)
        assert len(history) == 1
        assert history[0].data["icons"]["cache_capacity"] == 300


class TestSetSetting:
    def test_valid_value(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        config.set_setting("icons.max_pending", 50)
        assert config.get_setting("icons.max_pending") == 50

    def test_invalid_value_is_rejected(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        config.set_setting("icons.max_concurrency", 0)
        assert config.get_setting("icons.max_concurrency") == 6
        assert memory_logger.get_entries("WARNING")

    def test_unknown_key(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        config.set_setting("icons.colour", "red")
        config.set_setting("flat", 1)
        assert config.get_setting("icons.colour") is None
        assert len(memory_logger.get_entries("WARNING")) == 2


class TestImportExport:
    def test_yaml_round_trip(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        config.set_setting("ui.theme", "light")
        export_path = temp_dir / "settings.yaml"
        assert config.export_config(export_path)
        assert yaml.safe_load(export_path.read_text(encoding="utf-8"))["ui"]["theme"] == "light"

        other = ConfigService(memory_logger, temp_dir / "other")
        assert other.import_config(export_path)
        assert other.get_setting("ui.theme") == "light"

    def test_import_json(self, temp_dir, memory_logger):
        source = temp_dir / "import.json"
        source.write_text(json.dumps({"icons": {"viewport_margin": 480}}), encoding="utf-8")
        config = ConfigService(memory_logger, temp_dir / "cfg")
        assert config.import_config(source)
        assert config.get_setting("icons.viewport_margin") == 480

    def test_import_missing_file(self, temp_dir, memory_logger):
        config = ConfigService(memory_logger, temp_dir)
        assert not config.import_config(temp_dir / "missing.yaml")
