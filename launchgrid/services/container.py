"""
Dependency injection container for LaunchGrid.
Manages service instances and their dependencies.
"""

from __future__ import annotations

from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)
from pathlib import Path
import asyncio
import inspect
import sys
from dataclasses import dataclass

from .interfaces import IConfigService, IEventBus, IIconProvider, ILogger
from .config_service import ConfigService
from .event_bus import EventBus
from .icon_provider import IconProvider
from .logging_service import LoggingService, LogLevel
from ..core.fetch_scheduler import FetchScheduler
from ..core.icon_binding import IconBinder
from ..core.icon_cache import IconCache

T = TypeVar("T")


@dataclass
class ServiceRegistration:
    """Registration information for a service."""

    service_type: Type
    implementation: Optional[Type]
    singleton: bool = True
    factory: Optional[Callable] = None


class ServiceContainer:
    """Dependency injection container."""

    def __init__(self):
        self._registrations: Dict[str, ServiceRegistration] = {}
        self._instances: Dict[str, Any] = {}
        self._building: set[str] = set()

    # ------------------------------------------------------------------
    # Registration helpers
    # ------------------------------------------------------------------
    def register_singleton(self, service_type: Type[T], implementation: Type[T]) -> "ServiceContainer":
        key = self._get_service_key(service_type)
        self._registrations[key] = ServiceRegistration(service_type, implementation, singleton=True)
        return self

    def register_transient(self, service_type: Type[T], implementation: Type[T]) -> "ServiceContainer":
        key = self._get_service_key(service_type)
        self._registrations[key] = ServiceRegistration(service_type, implementation, singleton=False)
        return self

    def register_factory(
        self,
        service_type: Type[T],
        factory: Callable[..., T],
        singleton: bool = True,
    ) -> "ServiceContainer":
        key = self._get_service_key(service_type)
        self._registrations[key] = ServiceRegistration(service_type, None, singleton, factory)
        return self

    def register_instance(self, service_type: Type[T], instance: T) -> "ServiceContainer":
        self._instances[self._get_service_key(service_type)] = instance
        return self

    # ------------------------------------------------------------------
    # Resolution API
    # ------------------------------------------------------------------
    def get(self, service_type: Type[T]) -> T:
        key = self._get_service_key(service_type)

        if key in self._instances:
            return self._instances[key]

        if key not in self._registrations:
            raise ValueError(f"Service {service_type.__name__} is not registered")

        if key in self._building:
            raise ValueError(f"Circular dependency detected for service {service_type.__name__}")

        registration = self._registrations[key]
        try:
            self._building.add(key)
            if registration.factory:
                instance = self._call_with_dependencies(registration.factory, registration.factory)
            else:
                instance = self._call_with_dependencies(registration.implementation,
                                                        registration.implementation.__init__)
            if registration.singleton:
                self._instances[key] = instance
            return instance
        finally:
            self._building.discard(key)

    def _call_with_dependencies(self, target: Callable, signature_source: Callable) -> Any:
        """Call ``target`` with every registered dependency its signature asks for."""
        sig = inspect.signature(signature_source)
        module = sys.modules.get(getattr(signature_source, "__module__", ""), None)
        globalns = getattr(signature_source, "__globals__", None) or (vars(module) if module else {})
        try:
            type_hints = get_type_hints(signature_source, globalns=globalns, localns=None)
        except Exception:
            type_hints = {}

        kwargs: Dict[str, Any] = {}
        for param_name, param in sig.parameters.items():
            if param_name == "self":
                continue
            annotation = type_hints.get(param_name, param.annotation)
            dependency_type = self._resolve_annotation(annotation)
            if dependency_type is None:
                continue
            if not self.is_registered(dependency_type):
                if param.default == inspect.Parameter.empty:
                    raise ValueError(
                        f"Cannot resolve dependency {getattr(dependency_type, '__name__', dependency_type)!r} "
                        f"for {getattr(target, '__name__', target)}.{param_name}"
                    )
                continue
            kwargs[param_name] = self.get(dependency_type)
        return target(**kwargs)

    def _resolve_annotation(self, annotation: Any) -> Optional[Type]:
        """Resolve Optional / Annotated annotations into a concrete type."""
        if annotation is inspect.Parameter.empty or annotation is None or annotation is Any:
            return None

        origin = get_origin(annotation)
        if origin is None:
            return annotation if isinstance(annotation, type) else None

        if origin is Annotated:
            base, *_ = get_args(annotation)
            return self._resolve_annotation(base)

        if origin is Union:
            resolved = [
                self._resolve_annotation(arg)
                for arg in get_args(annotation)
                if arg is not type(None)  # noqa: E721
            ]
            resolved = [arg for arg in resolved if arg is not None]
            if len(resolved) == 1:
                return resolved[0]
        return None

    # ------------------------------------------------------------------
    # Registry helpers
    # ------------------------------------------------------------------
    def _get_service_key(self, service_type: Type) -> str:
        if not hasattr(service_type, "__module__") or not hasattr(service_type, "__name__"):
            raise TypeError(f"Service key expects a type, got {service_type!r}")
        return f"{service_type.__module__}.{service_type.__name__}"

    def is_registered(self, service_type: Type) -> bool:
        try:
            key = self._get_service_key(service_type)
        except TypeError:
            return False
        return key in self._registrations or key in self._instances

    def clear(self) -> None:
        self._registrations.clear()
        self._instances.clear()
        self._building.clear()

    def get_registered_services(self) -> List[str]:
        return list(self._registrations.keys()) + list(self._instances.keys())


class ServiceContainerBuilder:
    """Builder for configuring the service container."""

    def __init__(self):
        self._container = ServiceContainer()
        self._log_file: Optional[Path] = None
        self._console_level = LogLevel.INFO
        self._config_dir: Optional[Path] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def configure_logging(
        self,
        log_file: Optional[Path] = None,
        console_level: LogLevel = LogLevel.INFO,
    ) -> "ServiceContainerBuilder":
        self._log_file = log_file
        self._console_level = console_level
        return self

    def configure_config(self, config_dir: Optional[Path] = None) -> "ServiceContainerBuilder":
        self._config_dir = config_dir
        return self

    def configure_loop(self, loop: asyncio.AbstractEventLoop) -> "ServiceContainerBuilder":
        """Pin the fetch scheduler to a loop instead of the running one."""
        self._loop = loop
        return self

    def configure_default_services(self) -> "ServiceContainerBuilder":
        log_file, console_level = self._log_file, self._console_level
        config_dir, loop = self._config_dir, self._loop

        def logger_factory() -> ILogger:
            return LoggingService("LaunchGrid", log_file, console_level, LogLevel.DEBUG)

        def config_factory(logger: ILogger, event_bus: IEventBus) -> IConfigService:
            return ConfigService(logger, config_dir, event_bus)

        def provider_factory(logger: ILogger, config: IConfigService) -> IIconProvider:
            cache_dir = config.get_data_dir() / "icons" if config.get_setting("icons.disk_cache", True) else None
            return IconProvider(
                logger,
                cache_dir=cache_dir,
                icon_size=config.get_setting("icons.icon_size", 128),
                synthetic_prefixes=config.get_setting("icons.synthetic_prefixes", ["Script:"]),
            )

        def cache_factory(config: IConfigService) -> IconCache:
            return IconCache(config.get_setting("icons.cache_capacity", 300))

        def scheduler_factory(provider: IIconProvider, cache: IconCache,
                              config: IConfigService, event_bus: IEventBus) -> FetchScheduler:
            return FetchScheduler(
                provider.fetch_icon,
                cache,
                max_concurrency=config.get_setting("icons.max_concurrency", 6),
                max_pending=config.get_setting("icons.max_pending"),
                event_bus=event_bus,
                loop=loop,
            )

        def binder_factory(scheduler: FetchScheduler, cache: IconCache,
                           config: IConfigService) -> IconBinder:
            return IconBinder(
                scheduler,
                cache,
                priority=config.get_setting("icons.default_priority", 10),
                synthetic_prefixes=config.get_setting("icons.synthetic_prefixes", ["Script:"]),
            )

        self._container.register_factory(ILogger, logger_factory)
        self._container.register_singleton(IEventBus, EventBus)
        self._container.register_factory(IConfigService, config_factory)
        self._container.register_factory(IIconProvider, provider_factory)
        self._container.register_factory(IconCache, cache_factory)
        self._container.register_factory(FetchScheduler, scheduler_factory)
        self._container.register_factory(IconBinder, binder_factory)
        return self

    def add_custom_service(
        self,
        service_type: Type[T],
        implementation: Type[T],
        singleton: bool = True,
    ) -> "ServiceContainerBuilder":
        if singleton:
            self._container.register_singleton(service_type, implementation)
        else:
            self._container.register_transient(service_type, implementation)
        return self

    def add_instance(self, service_type: Type[T], instance: T) -> "ServiceContainerBuilder":
        self._container.register_instance(service_type, instance)
        return self

    def build(self) -> ServiceContainer:
        return self._container


# Global container instance
_global_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    global _global_container
    if _global_container is None:
        _global_container = ServiceContainerBuilder().configure_default_services().build()
    return _global_container


def set_container(container: ServiceContainer) -> None:
    global _global_container
    _global_container = container


def get_service(service_type: Type[T]) -> T:
    return get_container().get(service_type)


def configure_services(
    log_file: Optional[Path] = None,
    config_dir: Optional[Path] = None,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> ServiceContainer:
    builder = ServiceContainerBuilder().configure_logging(log_file).configure_config(config_dir)
    if loop is not None:
        builder.configure_loop(loop)
    container = builder.configure_default_services().build()
    set_container(container)
    return container
