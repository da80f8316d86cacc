"""
Pytest configuration and fixtures for LaunchGrid tests.
"""

import asyncio
import os
import sys
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from PySide6.QtWidgets import QApplication

from launchgrid.services.logging_service import MemoryLogger


class FakeIconSource:
    """Stand-in for the native icon collaborator.

    In ``manual`` mode every fetch blocks until ``release(key)`` is called, so
    tests can observe the queue while fetches are outstanding.
    """

    def __init__(self, results: Optional[Dict[str, Optional[str]]] = None,
                 failing: tuple = (), manual: bool = False):
        self.results = results or {}
        self.failing = set(failing)
        self.manual = manual
        self.calls: List[str] = []
        self.outstanding: List[str] = []
        self.max_outstanding = 0
        self._gates: Dict[str, asyncio.Event] = {}

    async def fetch_icon(self, key: str) -> Optional[str]:
        self.calls.append(key)
        self.outstanding.append(key)
        self.max_outstanding = max(self.max_outstanding, len(self.outstanding))
        try:
            if self.manual:
                await self._gate(key).wait()
            else:
                await asyncio.sleep(0)
            if key in self.failing:
                raise RuntimeError(f"icon lookup failed for {key}")
            return self.results.get(key, f"data:image/png;base64,{key}")
        finally:
            self.outstanding.remove(key)

    def _gate(self, key: str) -> asyncio.Event:
        if key not in self._gates:
            self._gates[key] = asyncio.Event()
        return self._gates[key]

    def release(self, key: str) -> None:
        self._gate(key).set()

    def release_all(self) -> None:
        for key in list(self.outstanding):
            self.release(key)


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks and future callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture(scope="session")
def qapp():
    """Create a QApplication instance for testing GUI components."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    path = tempfile.mkdtemp()
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def memory_logger():
    return MemoryLogger()


@pytest.fixture
def icon_source():
    return FakeIconSource()


@pytest.fixture
def manual_source():
    return FakeIconSource(manual=True)
