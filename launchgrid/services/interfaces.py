"""
Abstract interfaces for LaunchGrid services.
These interfaces define contracts for different service components,
enabling better testability and maintainability.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, Optional, Any, Callable
from pathlib import Path

from ..core import fetch_scheduler


class IIconProvider(ABC):
    """Interface for the native icon source behind the fetch scheduler."""

    @abstractmethod
    async def fetch_icon(self, key: str) -> Optional[str]:
        """Return the icon for a key as a data URI, or None if there is none."""
        pass


class IConfigService(ABC):
    """Interface for configuration management."""

    @abstractmethod
    def load_config(self) -> Dict[str, Any]:
        """Load application configuration."""
        pass

    @abstractmethod
    def save_config(self, config: Dict[str, Any]) -> bool:
        """Save application configuration."""
        pass

    @abstractmethod
    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a specific setting value."""
        pass

    @abstractmethod
    def set_setting(self, key: str, value: Any) -> None:
        """Set a specific setting value."""
        pass

    @abstractmethod
    def get_data_dir(self) -> Path:
        """Directory holding the config file and on-disk caches."""
        pass


class IEventBus(ABC):
    """Interface for event-driven communication between components."""

    @abstractmethod
    def subscribe(self, event_type: str, handler: Callable) -> None:
        """Subscribe to an event type."""
        pass

    @abstractmethod
    def unsubscribe(self, event_type: str, handler: Callable) -> None:
        """Unsubscribe from an event type."""
        pass

    @abstractmethod
    def publish(self, event_type: str, data: Any = None) -> None:
        """Publish an event."""
        pass


class ILogger(ABC):
    """Interface for logging operations."""

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """Log a debug message."""
        pass

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """Log an info message."""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """Log a warning message."""
        pass

    @abstractmethod
    def error(self, message: str, exception: Optional[Exception] = None, **kwargs) -> None:
        """Log an error message."""
        pass


# Event types for the event bus
class Events:
    """Standard event types used throughout the application."""

    # Icon events
    ICON_FETCH_STARTED = fetch_scheduler.FETCH_STARTED
    ICON_RESOLVED = fetch_scheduler.ICON_RESOLVED
    ICON_MISSING = fetch_scheduler.ICON_MISSING

    # Application events
    CONFIG_CHANGED = "app.config_changed"
