"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample trees and species
- A manual scheduler for timer-driven behaviour
- Mock API client
- A started map engine and map view session
- FastAPI test client
"""
import asyncio
import itertools
from dataclasses import dataclass
from typing import Callable

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from treemap.main import app
from treemap.config import Settings
from treemap.domain.models import Coordinate, NewTreeLocation, TreeLocation, TreeSpecies
from treemap.infrastructure.external_api_client import TreeAPIClient
from treemap.infrastructure.map_engine import ClusteredMapEngine
from treemap.infrastructure.map_layers import TREE_SOURCE, ClusterConfig, build_tree_layers
from treemap.services.application.map_view_service import MapViewSession


CENTER = Coordinate(longitude=-71.093, latitude=42.3825)
CLUSTER_ZOOM = 15.0


# ============================================================
# Manual Scheduler
# ============================================================

@dataclass
class ManualTimer:
    when: float
    callback: Callable[[], object]
    order: int
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when a test advances it."""

    def __init__(self):
        self.now = 0.0
        self._timers: list[ManualTimer] = []
        self._order = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], object]) -> ManualTimer:
        timer = ManualTimer(when=self.now + delay, callback=callback, order=next(self._order))
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self._timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.order))
            self._timers.remove(timer)
            self.now = max(self.now, timer.when)
            timer.callback()
        self.now = target


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


# ============================================================
# Sample Data Fixtures
# ============================================================

def make_tree(location_id: int, common_name: str, lon: float, lat: float, tree_id: int = 1) -> TreeLocation:
    return TreeLocation(
        location_id=location_id,
        tree_id=tree_id,
        common_name=common_name,
        latin_name=f"{common_name} latin",
        latitude=lat,
        longitude=lon,
        source="Street tree survey",
        is_native=common_name != "Honey Locust",
    )


@pytest.fixture
def sample_trees() -> list[TreeLocation]:
    """
    Trees laid out so that at zoom 15 around CENTER there is a western
    cluster, an eastern cluster, one lone point and one tree off screen.
    """
    return [
        # Western cluster
        make_tree(1, "Red Maple", -71.0960, 42.3825, tree_id=10),
        make_tree(2, "Red Maple", -71.0961, 42.3826, tree_id=10),
        make_tree(3, "Pin Oak", -71.0959, 42.3824, tree_id=20),
        # Eastern cluster
        make_tree(4, "Pin Oak", -71.0900, 42.3825, tree_id=20),
        make_tree(5, "Honey Locust", -71.0901, 42.3826, tree_id=30),
        # Lone point north of the centre
        make_tree(6, "Red Maple", -71.0930, 42.3860, tree_id=10),
        # Far outside the viewport
        make_tree(7, "Sugar Maple", -71.0300, 42.3825, tree_id=40),
    ]


@pytest.fixture
def sample_species() -> dict[int, TreeSpecies]:
    species = [
        TreeSpecies(tree_id=10, common_name="Red Maple", latin_name="Acer rubrum",
                    family="Sapindaceae", iucn_red_list_assessment="Least Concern"),
        TreeSpecies(tree_id=20, common_name="Pin Oak", latin_name="Quercus palustris",
                    family="Fagaceae", iucn_red_list_assessment="Least Concern"),
        TreeSpecies(tree_id=30, common_name="Honey Locust", latin_name="Gleditsia triacanthos",
                    family="Fabaceae", iucn_red_list_assessment="Least Concern"),
        TreeSpecies(tree_id=40, common_name="Sugar Maple", latin_name="Acer saccharum",
                    family="Sapindaceae", iucn_red_list_assessment="Least Concern"),
    ]
    return {s.tree_id: s for s in species}


@pytest.fixture
def red_maple_candidate() -> NewTreeLocation:
    return NewTreeLocation(
        tree_id=10,
        common_name="Red Maple",
        latin_name="Acer rubrum",
        latitude=42.38,
        longitude=-71.09,
        source="User submission",
        is_native=True,
    )


@pytest.fixture
def map_settings() -> Settings:
    return Settings(
        map_center_longitude=CENTER.longitude,
        map_center_latitude=CENTER.latitude,
        map_zoom=CLUSTER_ZOOM,
        map_width=1280,
        map_height=800,
        cluster_radius=50,
        cluster_max_zoom=16,
        long_press_dwell_ms=1000,
        viewport_debounce_ms=300,
    )


# ============================================================
# Mock API Client Fixtures
# ============================================================

@pytest.fixture
def mock_api_client(sample_trees, sample_species):
    """Create a mock tree inventory API client."""
    mock_client = AsyncMock(spec=TreeAPIClient)
    mock_client.fetch_entities.return_value = list(sample_trees)
    mock_client.fetch_species.return_value = dict(sample_species)

    async def create_entity(candidate: NewTreeLocation) -> TreeLocation:
        return TreeLocation(location_id=100, **candidate.model_dump())

    mock_client.create_entity.side_effect = create_entity
    mock_client.delete_entity.return_value = None
    return mock_client


# ============================================================
# Map Fixtures
# ============================================================

@pytest.fixture
def map_engine(sample_trees) -> ClusteredMapEngine:
    """A loaded engine with the tree source and layers at cluster zoom."""
    engine = ClusteredMapEngine(center=CENTER, zoom=CLUSTER_ZOOM, width=1280, height=800)
    engine.load()
    engine.add_clustered_source(TREE_SOURCE, sample_trees, ClusterConfig(max_zoom=16, radius=50))
    for layer in build_tree_layers():
        engine.add_layer(layer)
    return engine


@pytest.fixture
async def map_session(mock_api_client, manual_scheduler, map_settings):
    """A started MapViewSession driven by the manual scheduler."""
    session = MapViewSession(
        api_client=mock_api_client,
        scheduler=manual_scheduler,
        config=map_settings,
    )
    await session.start()
    yield session
    await session.close()


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def api_session(mock_api_client, manual_scheduler, map_settings) -> MapViewSession:
    """A started MapViewSession for endpoint tests."""
    session = MapViewSession(
        api_client=mock_api_client,
        scheduler=manual_scheduler,
        config=map_settings,
    )
    asyncio.run(session.start())
    return session


@pytest.fixture
def test_client(api_session) -> TestClient:
    """Create a synchronous test client bound to ``api_session``."""
    from treemap.api.dependencies import get_map_session

    app.dependency_overrides[get_map_session] = lambda: api_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
