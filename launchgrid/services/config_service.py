"""
Configuration service implementation for LaunchGrid.
Handles application settings and configuration management.
"""

from __future__ import annotations
from typing import Dict, Any, List, Optional
from pathlib import Path
import json
import os

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .interfaces import IConfigService, ILogger, IEventBus, Events


class IconSettings(BaseModel):
    """Icon retrieval configuration."""
    model_config = ConfigDict(validate_assignment=True)

    cache_capacity: int = Field(default=300, ge=1)
    max_concurrency: int = Field(default=6, ge=1)
    max_pending: Optional[int] = Field(default=None, ge=1)
    default_priority: int = 10
    viewport_margin: int = Field(default=240, ge=0)
    visibility_threshold: float = Field(default=0.01, gt=0.0, le=1.0)
    icon_size: int = Field(default=128, ge=16, le=1024)
    synthetic_prefixes: List[str] = Field(default_factory=lambda: ["Script:"])
    disk_cache: bool = True


class UISettings(BaseModel):
    """UI-related configuration."""
    model_config = ConfigDict(validate_assignment=True)

    theme: str = "dark"
    window_width: int = Field(default=960, ge=200)
    window_height: int = Field(default=640, ge=200)
    tile_size: int = Field(default=96, ge=32)
    columns: int = Field(default=6, ge=1)


class AppSettings(BaseModel):
    """Main application configuration."""
    model_config = ConfigDict(validate_assignment=True)

    icons: IconSettings = Field(default_factory=IconSettings)
    ui: UISettings = Field(default_factory=UISettings)


class ConfigService(IConfigService):
    """Concrete implementation of configuration service."""

    def __init__(self, logger: ILogger, config_dir: Optional[Path] = None,
                 event_bus: Optional[IEventBus] = None):
        self._logger = logger
        self._event_bus = event_bus
        self._config_dir = config_dir or self._get_default_config_dir()
        self._config_file = self._config_dir / "config.json"
        self._config = AppSettings()
        self._ensure_config_dir()
        self._load_config_from_file()

    @staticmethod
    def _get_default_config_dir() -> Path:
        """Get the default configuration directory."""
        if os.name == 'nt':
            return Path.home() / "AppData" / "Local" / "LaunchGrid"
        config_home = os.getenv("XDG_CONFIG_HOME")
        base = Path(config_home) if config_home else Path.home() / ".config"
        return base / "launchgrid"

    def get_data_dir(self) -> Path:
        return self._config_dir

    def _ensure_config_dir(self) -> None:
        try:
            self._config_dir.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            self._logger.error(f"Failed to create config directory: {self._config_dir}", exception=e)

    def _load_config_from_file(self) -> None:
        if not self._config_file.exists():
            self._logger.info("No config file found, using defaults")
            return

        try:
            with open(self._config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            self._config = AppSettings.model_validate(data)
            self._logger.info(f"Loaded configuration from: {self._config_file}")

        except (ValidationError, ValueError, OSError) as e:
            self._logger.error(f"Failed to load config from {self._config_file}", exception=e)
            self._config = AppSettings()

    def load_config(self) -> Dict[str, Any]:
        """Load application configuration."""
        return self._config.model_dump()

    def save_config(self, config: Dict[str, Any]) -> bool:
        """Validate and save application configuration."""
        try:
            validated = AppSettings.model_validate(config)
        except ValidationError as e:
            self._logger.error("Rejected invalid configuration", exception=e)
            return False

        try:
            with open(self._config_file, 'w', encoding='utf-8') as f:
                json.dump(validated.model_dump(), f, indent=2, ensure_ascii=False)
        except OSError as e:
            self._logger.error(f"Failed to save config to {self._config_file}", exception=e)
            return False

        self._config = validated
        self._logger.info(f"Saved configuration to: {self._config_file}")
        if self._event_bus is not None:
            self._event_bus.publish(Events.CONFIG_CHANGED, self.load_config())
        return True

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a specific setting value using dot notation."""
        value: Any = self._config
        for part in key.split('.'):
            if not hasattr(value, part):
                return default
            value = getattr(value, part)
        return value

    def set_setting(self, key: str, value: Any) -> None:
        """Set a specific setting value using dot notation."""
        parts = key.split('.')
        if len(parts) < 2:
            self._logger.warning(f"Invalid setting key format: {key}")
            return

        obj: Any = self._config
        for part in parts[:-1]:
            if not hasattr(obj, part):
                self._logger.warning(f"Setting path not found: {key}")
                return
            obj = getattr(obj, part)

        final_key = parts[-1]
        if final_key not in type(obj).model_fields:
            self._logger.warning(f"Setting key not found: {key}")
            return

        try:
            setattr(obj, final_key, value)
            self._logger.debug(f"Set setting '{key}' = {value}")
        except ValidationError as e:
            self._logger.warning(f"Invalid value for setting '{key}': {value!r}", error=e.errors()[0]['msg'])

    def get_icon_settings(self) -> IconSettings:
        return self._config.icons

    def get_ui_settings(self) -> UISettings:
        return self._config.ui

    def export_config(self, export_path: Path) -> bool:
        """Export configuration to a JSON or YAML file."""
        try:
            config_dict = self.load_config()
            with open(export_path, 'w', encoding='utf-8') as f:
                if export_path.suffix.lower() in ('.yaml', '.yml'):
                    yaml.safe_dump(config_dict, f, default_flow_style=False)
                else:
                    json.dump(config_dict, f, indent=2, ensure_ascii=False)

            self._logger.info(f"Exported configuration to: {export_path}")
            return True

        except OSError as e:
            self._logger.error(f"Failed to export config to {export_path}", exception=e)
            return False

    def import_config(self, import_path: Path) -> bool:
        """Import configuration from a JSON or YAML file."""
        if not import_path.exists():
            self._logger.error(f"Config file not found: {import_path}")
            return False

        try:
            with open(import_path, 'r', encoding='utf-8') as f:
                if import_path.suffix.lower() in ('.yaml', '.yml'):
                    config_dict = yaml.safe_load(f) or {}
                else:
                    config_dict = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            self._logger.error(f"Failed to import config from {import_path}", exception=e)
            return False

        success = self.save_config(config_dict)
        if success:
            self._logger.info(f"Imported configuration from: {import_path}")
        return success
