"""
Services package for LaunchGrid.
This package contains service classes that handle business logic
and separate concerns from the UI layer.
"""

# Interfaces
from .interfaces import IConfigService, IEventBus, IIconProvider, ILogger, Events

# Concrete implementations
from .config_service import ConfigService, AppSettings, IconSettings, UISettings
from .logging_service import LoggingService, LogLevel, NullLogger, MemoryLogger
from .event_bus import EventBus, EventData
from .icon_provider import IconProvider
from .container import (
    ServiceContainer, ServiceContainerBuilder,
    get_container, set_container, get_service, configure_services
)

__all__ = [
    # Interfaces
    'IConfigService', 'IEventBus', 'IIconProvider', 'ILogger', 'Events',

    # Implementations
    'ConfigService', 'LoggingService', 'EventBus', 'IconProvider',

    # Configuration classes
    'AppSettings', 'IconSettings', 'UISettings',

    # Logging utilities
    'LogLevel', 'NullLogger', 'MemoryLogger',

    # Event bus utilities
    'EventData',

    # Dependency injection
    'ServiceContainer', 'ServiceContainerBuilder',
    'get_container', 'set_container', 'get_service', 'configure_services'
]
