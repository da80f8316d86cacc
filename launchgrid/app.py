from __future__ import annotations
from typing import Iterable, List, Optional
from pathlib import Path
import asyncio
import platform
import sys

from PySide6 import QtAsyncio
from PySide6.QtWidgets import QApplication

from .core.fetch_scheduler import FetchScheduler
from .core.icon_binding import IconBinder
from .core.icon_cache import IconCache
from .services import ConfigService, IConfigService, IEventBus, ILogger, LoggingService, configure_services
from .ui.app_grid import LaunchItem
from .ui.main_window import MainWindow

DEFAULT_APP_DIRS = (
    Path("/Applications"),
    Path("/System/Applications"),
    Path("/usr/share/applications"),
    Path.home() / ".local" / "share" / "applications",
)
APP_SUFFIXES = {".app", ".desktop", ".exe", ".lnk"}

# top-level windows stay referenced for the lifetime of the event loop
_windows: List[MainWindow] = []


def collect_items(paths: Iterable[Path]) -> List[LaunchItem]:
    """List launchable entries directly inside the given directories."""
    items: List[LaunchItem] = []
    seen = set()
    for base in paths:
        if not base.exists():
            continue
        if base.is_file() or base.suffix.lower() in APP_SUFFIXES:
            candidates = [base]
        elif base.is_dir():
            candidates = sorted(base.iterdir(), key=lambda p: p.name.lower())
        else:
            continue
        for entry in candidates:
            if entry.suffix.lower() not in APP_SUFFIXES or str(entry) in seen:
                continue
            seen.add(str(entry))
            items.append(LaunchItem(key=str(entry), name=entry.stem))
    return items


def setup_application() -> QApplication:
    """Set up the Qt application with proper configuration."""
    app = QApplication.instance() or QApplication(sys.argv)
    app.setApplicationName("LaunchGrid")
    app.setOrganizationName("LaunchGrid")
    return app


async def run(app: QApplication, paths: List[Path], log_file: Optional[Path]) -> None:
    container = configure_services(log_file=log_file, loop=asyncio.get_running_loop())

    logger = container.get(ILogger)
    logger.info("LaunchGrid starting up")
    if isinstance(logger, LoggingService):
        logger.attach("launchgrid")
        logger.log_system_info({
            "platform": platform.platform(),
            "python_version": platform.python_version(),
        })

    config = container.get(IConfigService)
    scheduler = container.get(FetchScheduler)
    cache = container.get(IconCache)
    icon_settings = config.get_setting("icons")
    ui_settings = config.get_setting("ui")

    window = MainWindow(
        container.get(IconBinder),
        scheduler,
        cache,
        container.get(IEventBus),
        ui_settings,
        margin=icon_settings.viewport_margin,
        threshold=icon_settings.visibility_threshold,
    )
    window.set_items(collect_items(paths or list(DEFAULT_APP_DIRS)))
    window.show()
    _windows.append(window)

    def on_about_to_quit():
        logger.info("Application shutting down")
        scheduler.shutdown()

    app.aboutToQuit.connect(on_about_to_quit)
    logger.info("Main window displayed", items=len(window.grid.tiles))


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    argv = list(sys.argv[1:] if argv is None else argv)
    paths = [Path(arg).expanduser() for arg in argv]
    log_file = ConfigService._get_default_config_dir() / "logs" / "launchgrid.log"

    app = setup_application()
    try:
        QtAsyncio.run(run(app, paths, log_file), keep_running=True, quit_qapp=True)
    except Exception as e:
        print(f"Fatal error during application startup: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
