"""
Domain service: group the features visible in the viewport by tree category.

Counts are the number of map features (points or clusters) that contain at
least one tree of a category, not the number of trees.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from treemap.domain.features import ClusterFeature, PointFeature, RenderedFeature
from treemap.domain.models import TreeLocation
from treemap.services.domain.cluster_expansion import ClusterExpansionAdapter

logger = logging.getLogger(__name__)


@dataclass
class CategoryGroup:
    """The visible features containing at least one tree of a category."""
    category: str
    features: list[RenderedFeature] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.features)


@dataclass
class CategoryAggregation:
    """Category groups ordered by descending feature count."""
    groups: list[CategoryGroup] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "CategoryAggregation":
        return cls()

    @property
    def categories(self) -> list[str]:
        return [g.category for g in self.groups]

    def as_mapping(self) -> dict[str, list[RenderedFeature]]:
        return {g.category: list(g.features) for g in self.groups}

    def counts(self) -> dict[str, int]:
        return {g.category: g.count for g in self.groups}


def dedupe_points(points: Iterable[PointFeature]) -> list[PointFeature]:
    """Keep the first rendered point of each tree."""
    seen: set[int] = set()
    unique = []
    for point in points:
        if point.tree.location_id in seen:
            continue
        seen.add(point.tree.location_id)
        unique.append(point)
    return unique


class VisibleCategoryAggregator:
    """Builds the sidebar's category list from rendered points and clusters."""

    def __init__(self, adapter: ClusterExpansionAdapter):
        self.adapter = adapter

    async def _members(self, feature: RenderedFeature) -> list[TreeLocation]:
        if isinstance(feature, ClusterFeature):
            return await self.adapter.members(feature.cluster_id)
        return [feature.tree]

    async def aggregate(
        self,
        rendered_points: Iterable[PointFeature],
        rendered_clusters: Iterable[ClusterFeature],
    ) -> CategoryAggregation:
        """
        Map every visible category to the features that contain it.

        All cluster expansions run concurrently; the aggregation is only
        built once every one of them has settled.
        """
        features: list[RenderedFeature] = [
            *dedupe_points(rendered_points),
            *rendered_clusters,
        ]
        expansions = await asyncio.gather(*(self._members(f) for f in features))

        groups: dict[str, dict[str, RenderedFeature]] = {}
        for feature, members in zip(features, expansions):
            for tree in members:
                groups.setdefault(tree.category, {})[feature.key] = feature

        ordered = sorted(
            (CategoryGroup(category=name, features=list(by_key.values()))
             for name, by_key in groups.items()),
            key=lambda g: g.count,
            reverse=True,
        )
        logger.debug(
            f"Aggregated {len(features)} features into {len(ordered)} categories"
        )
        return CategoryAggregation(groups=ordered)
