"""
Domain service: compute and apply the highlight overlay filters.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from treemap.domain.features import ClusterFeature, FeatureFilter
from treemap.infrastructure.map_engine import ClusteredMapEngine
from treemap.infrastructure.map_layers import (
    CLUSTER_LAYER,
    HIGHLIGHTED_CLUSTER_LAYER,
    HIGHLIGHTED_POINT_LAYER,
)
from treemap.services.domain.cluster_expansion import ClusterExpansionAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HighlightFilters:
    """Filters for the highlighted point and highlighted cluster overlays."""
    category: Optional[str]
    point_filter: FeatureFilter
    cluster_filter: FeatureFilter

    @classmethod
    def none(cls) -> "HighlightFilters":
        return cls(
            category=None,
            point_filter=FeatureFilter.nothing("common_name"),
            cluster_filter=FeatureFilter.nothing("cluster_id"),
        )

    @property
    def cluster_ids(self) -> list[int]:
        return sorted(self.cluster_filter.values)


def toggle_category(current: Optional[str], selected: Optional[str]) -> Optional[str]:
    """Selecting the highlighted category again clears the highlight."""
    if selected == current:
        return None
    return selected


class HighlightFilterSynchronizer:
    """
    Decides which points and clusters are highlighted for a category.

    Filters are always recomputed from the clusters rendered right now and
    pushed to the dedicated overlay layers, leaving base layer paint alone.
    """

    def __init__(self, engine: ClusteredMapEngine, adapter: ClusterExpansionAdapter):
        self.engine = engine
        self.adapter = adapter

    async def highlight(self, category: Optional[str]) -> HighlightFilters:
        if not category:
            return HighlightFilters.none()

        clusters = [
            f for f in self.engine.query_rendered_features(layers=[CLUSTER_LAYER])
            if isinstance(f, ClusterFeature)
        ]
        expansions = await asyncio.gather(
            *(self.adapter.members(c.cluster_id) for c in clusters)
        )
        cluster_ids = [
            cluster.cluster_id
            for cluster, members in zip(clusters, expansions)
            if any(tree.category == category for tree in members)
        ]
        logger.debug(
            f"Highlighting '{category}': {len(cluster_ids)}/{len(clusters)} clusters"
        )
        return HighlightFilters(
            category=category,
            point_filter=FeatureFilter.matching("common_name", [category]),
            cluster_filter=FeatureFilter.matching("cluster_id", cluster_ids),
        )

    def apply(self, filters: HighlightFilters) -> None:
        self.engine.set_filter(HIGHLIGHTED_POINT_LAYER, filters.point_filter)
        self.engine.set_filter(HIGHLIGHTED_CLUSTER_LAYER, filters.cluster_filter)
