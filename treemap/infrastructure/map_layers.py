"""
Layer and source definitions for the tree map.

This module centralizes the layer ids and paint rules so the session, the
highlight synchronizer and the engine agree on them.
"""
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from treemap.domain.features import FeatureFilter


TREE_SOURCE = "trees"

CLUSTER_LAYER = "clusters"
HIGHLIGHTED_CLUSTER_LAYER = "highlighted-cluster"
CLUSTER_COUNT_LAYER = "cluster-count"
POINT_LAYER = "unclustered-point"
HIGHLIGHTED_POINT_LAYER = "highlighted-point"


@dataclass(frozen=True)
class ClusterConfig:
    """Clustering parameters for a clustered source."""
    max_zoom: int = 16
    radius: int = 50


@dataclass
class LayerSpec:
    """
    A render layer over one source.

    ``kind`` selects whether the layer draws clusters or unclustered points;
    ``filter`` further restricts which of those features it draws.
    """
    id: str
    source: str
    kind: Literal["cluster", "point"]
    paint: dict[str, Any] = field(default_factory=dict)
    filter: Optional[FeatureFilter] = None
    render_type: Literal["circle", "symbol"] = "circle"

    @property
    def hit_radius(self) -> float:
        return float(self.paint.get("circle-radius", 0))


def build_tree_layers() -> list[LayerSpec]:
    """
    Build the base and overlay layers for the tree source.

    The two highlight overlays start with filters that match nothing.
    """
    return [
        LayerSpec(
            id=CLUSTER_LAYER,
            source=TREE_SOURCE,
            kind="cluster",
            paint={"circle-color": "#51bbd6", "circle-radius": 20},
        ),
        LayerSpec(
            id=HIGHLIGHTED_CLUSTER_LAYER,
            source=TREE_SOURCE,
            kind="cluster",
            paint={"circle-color": "#FFD580", "circle-radius": 20},
            filter=FeatureFilter.nothing("cluster_id"),
        ),
        LayerSpec(
            id=CLUSTER_COUNT_LAYER,
            source=TREE_SOURCE,
            kind="cluster",
            render_type="symbol",
            paint={"text-field": "{point_count_abbreviated}", "text-size": 12},
        ),
        LayerSpec(
            id=POINT_LAYER,
            source=TREE_SOURCE,
            kind="point",
            paint={"circle-color": "#11b4da", "circle-radius": 15},
        ),
        LayerSpec(
            id=HIGHLIGHTED_POINT_LAYER,
            source=TREE_SOURCE,
            kind="point",
            paint={"circle-color": "#FFD580", "circle-radius": 15},
            filter=FeatureFilter.nothing("common_name"),
        ),
    ]
