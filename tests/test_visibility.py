"""
Tests for viewport gating of icon fetches.
"""

import asyncio

import pytest
from PySide6.QtCore import QRect, Qt
from PySide6.QtWidgets import QScrollArea, QWidget

from conftest import FakeIconSource, settle

from launchgrid.core.fetch_scheduler import FetchScheduler
from launchgrid.core.icon_binding import IconBinder
from launchgrid.core.icon_cache import IconCache
from launchgrid.core.visibility import VisibilityGate, intersection_ratio, is_active
from launchgrid.ui.app_grid import AppGrid, LaunchItem

VIEWPORT = QRect(0, 0, 400, 300)


class TestIntersection:
    """Geometry of the widened viewport."""

    def test_fully_visible(self):
        assert intersection_ratio(QRect(10, 10, 50, 50), VIEWPORT) == 1.0

    def test_below_viewport_within_margin(self):
        item = QRect(10, 300 + 100, 50, 50)
        assert is_active(item, VIEWPORT)

    def test_above_viewport_within_margin(self):
        item = QRect(10, -200, 50, 50)
        assert is_active(item, VIEWPORT)

    def test_beyond_margin(self):
        item = QRect(10, 300 + 260, 50, 50)
        assert intersection_ratio(item, VIEWPORT) == 0.0
        assert not is_active(item, VIEWPORT)

    def test_margin_is_vertical_only(self):
        item = QRect(420, 10, 50, 50)
        assert not is_active(item, VIEWPORT)

    def test_partial_overlap_ratio(self):
        # half of the item pokes above the widened top edge
        item = QRect(0, -240 - 25, 50, 50)
        assert intersection_ratio(item, VIEWPORT) == pytest.approx(0.5)

    def test_sliver_below_threshold(self):
        item = QRect(0, 300 + 240 - 5, 100, 1000)
        assert 0.0 < intersection_ratio(item, VIEWPORT) < 0.01
        assert not is_active(item, VIEWPORT)

    def test_custom_margin(self):
        item = QRect(10, 300 + 100, 50, 50)
        assert not is_active(item, VIEWPORT, margin=0)

    def test_zero_sized_item_is_inactive(self):
        assert not is_active(QRect(10, 10, 0, 0), VIEWPORT)


@pytest.fixture
def scroll_area(qapp):
    area = QScrollArea()
    area.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
    area.resize(240, 300)
    container = QWidget()
    container.setFixedSize(200, 3000)
    area.setWidget(container)
    area.show()
    qapp.processEvents()
    yield area
    area.close()
    area.deleteLater()
    qapp.processEvents()


def place_child(area, y):
    child = QWidget(area.widget())
    child.setGeometry(0, y, 50, 50)
    child.show()
    return child


class TestVisibilityGate:
    """Transitions reported while scrolling."""

    def test_initial_state_reported(self, scroll_area):
        gate = VisibilityGate(scroll_area)
        seen = {}
        for y in (0, 450, 1000):
            gate.observe(place_child(scroll_area, y), lambda active, y=y: seen.setdefault(y, []).append(active))
        assert seen == {0: [True], 450: [True], 1000: [False]}

    def test_scrolling_flips_state(self, scroll_area, qapp):
        gate = VisibilityGate(scroll_area)
        seen = {}
        children = {}
        for y in (0, 450, 1000):
            children[y] = place_child(scroll_area, y)
            gate.observe(children[y], lambda active, y=y: seen.setdefault(y, []).append(active))

        scroll_area.verticalScrollBar().setValue(900)
        gate.refresh()

        assert seen[0] == [True, False]
        assert seen[450] == [True, False]
        assert seen[1000] == [False, True]
        assert gate.is_active(children[1000])
        assert not gate.is_active(children[0])

    def test_refresh_without_change_is_silent(self, scroll_area):
        gate = VisibilityGate(scroll_area)
        seen = []
        gate.observe(place_child(scroll_area, 0), seen.append)
        gate.refresh()
        gate.refresh()
        assert seen == [True]

    def test_unobserve_stops_callbacks(self, scroll_area):
        gate = VisibilityGate(scroll_area)
        seen = []
        child = place_child(scroll_area, 0)
        gate.observe(child, seen.append)
        gate.unobserve(child)
        assert not gate.is_observed(child)
        scroll_area.verticalScrollBar().setValue(2000)
        gate.refresh()
        assert seen == [True]

    def test_hidden_widget_is_inactive(self, scroll_area):
        gate = VisibilityGate(scroll_area)
        seen = []
        child = place_child(scroll_area, 0)
        gate.observe(child, seen.append)
        child.hide()
        gate.refresh()
        assert seen == [True, False]


class TestAppGrid:
    """Tiles fetch icons only near the viewport."""

    def test_only_nearby_tiles_fetch(self, qapp):
        source = FakeIconSource()

        async def scenario():
            cache = IconCache()
            scheduler = FetchScheduler(source.fetch_icon, cache)
            grid = AppGrid(IconBinder(scheduler, cache), columns=4, tile_size=96)
            grid.resize(460, 400)
            grid.show()
            grid.set_items(LaunchItem(f"/Apps/App{i}.app", f"App{i}") for i in range(200))
            qapp.processEvents()
            grid.gate.refresh()
            await scheduler.join()
            await settle()
            tiles = grid.tiles
            active = [t for t in tiles if grid.gate.is_active(t)]
            loaded = [t for t in active if t.has_icon]
            grid.clear()
            grid.close()
            return tiles, active, loaded

        tiles, active, loaded = asyncio.run(scenario())
        assert len(tiles) == 200
        assert 0 < len(active) < 200
        assert tiles[0] in active
        assert tiles[-1] not in active
        assert loaded == active
        assert "/Apps/App199.app" not in source.calls
        assert len(source.calls) < 200

    def test_clear_releases_bindings(self, qapp):
        source = FakeIconSource()

        async def scenario():
            cache = IconCache()
            scheduler = FetchScheduler(source.fetch_icon, cache)
            grid = AppGrid(IconBinder(scheduler, cache))
            grid.set_items([LaunchItem("Script:sync", "Sync"), LaunchItem("/Apps/Mail.app", "Mail")])
            bindings = [tile.binding for tile in grid.tiles]
            grid.clear()
            return bindings, grid.tiles

        bindings, tiles = asyncio.run(scenario())
        assert tiles == []
        assert all(b.released for b in bindings)

    def test_placeholder_shows_initial(self, qapp):
        async def scenario():
            cache = IconCache()
            scheduler = FetchScheduler(FakeIconSource().fetch_icon, cache)
            grid = AppGrid(IconBinder(scheduler, cache))
            grid.set_items([LaunchItem("Script:sync", "sync")])
            text = grid.tiles[0].icon_label.text()
            grid.clear()
            return text

        assert asyncio.run(scenario()) == "S"
