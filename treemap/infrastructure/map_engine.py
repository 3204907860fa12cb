"""
Infrastructure layer: in-process clustered map rendering engine.

Keeps a clustered index of each source for the current viewport, answers
rendered-feature queries and hit tests, resolves cluster leaves, and
dispatches pointer and viewport events to subscribed handlers.
"""
import asyncio
import itertools
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from treemap.domain.features import (
    ClusterFeature,
    FeatureFilter,
    PointFeature,
    RenderedFeature,
)
from treemap.domain.models import Coordinate, TreeLocation
from treemap.infrastructure.map_layers import ClusterConfig, LayerSpec
from treemap.utils.geo_projection import project_to_pixels, unproject_from_pixels
from treemap.utils.spatial_helpers import (
    cluster_points,
    viewport_contains,
    within_radius,
)

logger = logging.getLogger(__name__)

POINTER_EVENTS = ("mousedown", "mouseup", "touchstart", "touchend", "touchcancel")
VIEWPORT_EVENTS = ("moveend", "zoomend")

Handler = Callable[[Any], Any]


class ClusterNotFoundError(KeyError):
    """Raised when a cluster id does not belong to the current index snapshot."""
    pass


class MapEngineError(Exception):
    """Raised on misuse of the engine (unknown source or layer)."""
    pass


@dataclass
class PointerEvent:
    """A mouse or touch event at a screen pixel."""
    type: str
    point: tuple[float, float]
    lnglat: Coordinate
    features: list[RenderedFeature] = field(default_factory=list)


@dataclass
class ViewportEvent:
    """Emitted after the viewport finished moving or zooming."""
    type: str
    center: Coordinate
    zoom: float


@dataclass
class _ClusteredSource:
    trees: list[TreeLocation]
    config: ClusterConfig
    points: list[PointFeature] = field(default_factory=list)
    clusters: list[ClusterFeature] = field(default_factory=list)
    leaves: dict[int, list[TreeLocation]] = field(default_factory=dict)


class ClusteredMapEngine:
    """
    Rendering engine with a clustered point index.

    The index is rebuilt on every data or viewport change. Cluster ids are
    never reused, so an id from an older snapshot is simply unknown to the
    current one.
    """

    def __init__(
        self,
        center: Coordinate,
        zoom: float,
        width: int = 1280,
        height: int = 800,
    ):
        self.center = center
        self.zoom = zoom
        self.width = width
        self.height = height
        self.loaded = False
        self._sources: dict[str, _ClusteredSource] = {}
        self._layers: dict[str, LayerSpec] = {}
        self._handlers: dict[str, list[tuple[Handler, Optional[str]]]] = {}
        self._cluster_ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Sources and layers
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Mark the map as ready and notify ``load`` subscribers."""
        self.loaded = True
        self._emit("load", None)

    def add_clustered_source(
        self,
        source_id: str,
        trees: Iterable[TreeLocation],
        config: ClusterConfig,
    ) -> None:
        self._sources[source_id] = _ClusteredSource(trees=list(trees), config=config)
        self._rebuild(source_id)

    def has_source(self, source_id: str) -> bool:
        return source_id in self._sources

    def set_data(self, source_id: str, trees: Iterable[TreeLocation]) -> None:
        source = self._get_source(source_id)
        source.trees = list(trees)
        self._rebuild(source_id)

    def source_data(self, source_id: str) -> list[TreeLocation]:
        return list(self._get_source(source_id).trees)

    def add_layer(self, layer: LayerSpec) -> None:
        self._get_source(layer.source)
        self._layers[layer.id] = layer

    def has_layer(self, layer_id: str) -> bool:
        return layer_id in self._layers

    def set_filter(self, layer_id: str, feature_filter: Optional[FeatureFilter]) -> None:
        self._get_layer(layer_id).filter = feature_filter

    def get_filter(self, layer_id: str) -> Optional[FeatureFilter]:
        return self._get_layer(layer_id).filter

    def _get_source(self, source_id: str) -> _ClusteredSource:
        try:
            return self._sources[source_id]
        except KeyError:
            raise MapEngineError(f"Unknown source '{source_id}'")

    def _get_layer(self, layer_id: str) -> LayerSpec:
        try:
            return self._layers[layer_id]
        except KeyError:
            raise MapEngineError(f"Unknown layer '{layer_id}'")

    # ------------------------------------------------------------------
    # Clustering index
    # ------------------------------------------------------------------

    def _screen_origin(self) -> tuple[float, float]:
        cx, cy = project_to_pixels(
            [(self.center.longitude, self.center.latitude)], self.zoom
        )[0]
        return float(cx - self.width / 2), float(cy - self.height / 2)

    def _rebuild(self, source_id: str) -> None:
        source = self._sources[source_id]
        source.points, source.clusters, source.leaves = [], [], {}
        if not source.trees:
            return

        world = project_to_pixels(
            [(t.longitude, t.latitude) for t in source.trees], self.zoom
        )
        ox, oy = self._screen_origin()

        if math.floor(self.zoom) > source.config.max_zoom:
            groups = [[i] for i in range(len(source.trees))]
        else:
            groups = cluster_points(world, source.config.radius)

        for group in groups:
            if len(group) == 1:
                i = group[0]
                source.points.append(
                    PointFeature(
                        tree=source.trees[i],
                        x=float(world[i][0] - ox),
                        y=float(world[i][1] - oy),
                    )
                )
                continue

            members = [source.trees[i] for i in group]
            cx, cy = (float(v) for v in world[group].mean(axis=0))
            lon, lat = unproject_from_pixels(cx, cy, self.zoom)
            cluster_id = next(self._cluster_ids)
            source.clusters.append(ClusterFeature(
                cluster_id=cluster_id,
                point_count=len(members),
                longitude=lon,
                latitude=lat,
                x=cx - ox,
                y=cy - oy,
            ))
            source.leaves[cluster_id] = members

        logger.debug(
            f"Rebuilt source '{source_id}' at zoom {self.zoom}: "
            f"{len(source.points)} points, {len(source.clusters)} clusters"
        )

    async def get_cluster_leaves(self, source_id: str, cluster_id: int) -> list[TreeLocation]:
        """
        Resolve every leaf tree of a cluster in the current snapshot.

        Raises:
            ClusterNotFoundError: If the cluster is not in the current snapshot
        """
        # Leaf lookups complete asynchronously, like a worker-backed index
        await asyncio.sleep(0)
        source = self._get_source(source_id)
        try:
            return list(source.leaves[cluster_id])
        except KeyError:
            raise ClusterNotFoundError(cluster_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_rendered_features(
        self,
        point: Optional[tuple[float, float]] = None,
        layers: Optional[list[str]] = None,
    ) -> list[RenderedFeature]:
        """
        Return features drawn by the given layers.

        Without ``point`` this returns every feature inside the viewport. With
        ``point`` it is a hit test using each layer's circle radius. A feature
        drawn by several of the requested layers is returned once per layer.
        """
        layer_ids = layers if layers is not None else list(self._layers)
        results: list[RenderedFeature] = []

        for layer_id in layer_ids:
            layer = self._get_layer(layer_id)
            source = self._get_source(layer.source)
            candidates = source.clusters if layer.kind == "cluster" else source.points

            for feature in candidates:
                if layer.filter is not None and not layer.filter.matches(feature):
                    continue
                if point is None:
                    if not viewport_contains(self.width, self.height, feature.x, feature.y):
                        continue
                elif not within_radius(point, feature.x, feature.y, layer.hit_radius):
                    continue
                results.append(feature)

        return results

    def unproject(self, point: tuple[float, float]) -> Coordinate:
        ox, oy = self._screen_origin()
        lon, lat = unproject_from_pixels(ox + point[0], oy + point[1], self.zoom)
        return Coordinate(longitude=lon, latitude=lat)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event_type: str, handler: Handler, layer_id: Optional[str] = None) -> None:
        self._handlers.setdefault(event_type, []).append((handler, layer_id))

    def off(self, event_type: str, handler: Handler, layer_id: Optional[str] = None) -> None:
        handlers = self._handlers.get(event_type, [])
        if (handler, layer_id) in handlers:
            handlers.remove((handler, layer_id))

    def handler_count(self, event_type: Optional[str] = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(h) for h in self._handlers.values())

    def _emit(self, event_type: str, event: Any) -> None:
        for handler, _ in list(self._handlers.get(event_type, [])):
            handler(event)

    def fire_pointer(self, event_type: str, x: float, y: float) -> PointerEvent:
        """
        Dispatch a pointer event at a screen pixel.

        Layer-bound handlers only run when the pointer hits their layer, and
        receive the hit features on the event.
        """
        if event_type not in POINTER_EVENTS:
            raise ValueError(f"Unsupported pointer event '{event_type}'")

        point = (float(x), float(y))
        event = PointerEvent(type=event_type, point=point, lnglat=self.unproject(point))

        for handler, layer_id in list(self._handlers.get(event_type, [])):
            if layer_id is None:
                handler(event)
                continue
            hits = self.query_rendered_features(point=point, layers=[layer_id])
            if hits:
                handler(PointerEvent(
                    type=event_type,
                    point=point,
                    lnglat=event.lnglat,
                    features=hits,
                ))
        return event

    def jump_to(self, center: Coordinate, zoom: Optional[float] = None) -> None:
        """Move the viewport, re-cluster every source and emit end events."""
        zoom_changed = zoom is not None and zoom != self.zoom
        self.center = center
        if zoom is not None:
            self.zoom = zoom
        for source_id in self._sources:
            self._rebuild(source_id)

        self._emit("moveend", ViewportEvent(type="moveend", center=self.center, zoom=self.zoom))
        if zoom_changed:
            self._emit("zoomend", ViewportEvent(type="zoomend", center=self.center, zoom=self.zoom))
