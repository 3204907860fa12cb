"""
Rendered map features and layer filters.

Features are produced by the rendering engine for one index snapshot and are
only meaningful until the next re-cluster.
"""
from dataclasses import dataclass, field
from typing import Any, Union

from treemap.domain.models import Coordinate, TreeLocation


@dataclass(frozen=True)
class PointFeature:
    """A rendered point wrapping exactly one tree."""
    tree: TreeLocation
    x: float
    y: float
    is_cluster = False

    @property
    def key(self) -> str:
        return f"point:{self.tree.location_id}"

    @property
    def coordinate(self) -> Coordinate:
        return self.tree.coordinate

    @property
    def properties(self) -> dict[str, Any]:
        return {
            "location_id": self.tree.location_id,
            "tree_id": self.tree.tree_id,
            "common_name": self.tree.common_name,
        }


@dataclass(frozen=True)
class ClusterFeature:
    """A rendered cluster of nearby trees; membership is resolved on demand."""
    cluster_id: int
    point_count: int
    longitude: float
    latitude: float
    x: float
    y: float
    is_cluster = True

    @property
    def key(self) -> str:
        return f"cluster:{self.cluster_id}"

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(longitude=self.longitude, latitude=self.latitude)

    @property
    def point_count_abbreviated(self) -> str:
        if self.point_count >= 10_000:
            return f"{round(self.point_count / 1000)}k"
        if self.point_count >= 1000:
            return f"{self.point_count / 1000:.1f}k"
        return str(self.point_count)

    @property
    def properties(self) -> dict[str, Any]:
        return {
            "cluster": True,
            "cluster_id": self.cluster_id,
            "point_count": self.point_count,
        }


RenderedFeature = Union[PointFeature, ClusterFeature]


@dataclass(frozen=True)
class FeatureFilter:
    """
    Membership predicate on a single feature property.

    An empty value set matches nothing, which is how overlay layers are
    switched off.
    """
    attribute: str
    values: frozenset = field(default_factory=frozenset)

    @classmethod
    def matching(cls, attribute: str, values) -> "FeatureFilter":
        return cls(attribute=attribute, values=frozenset(values))

    @classmethod
    def nothing(cls, attribute: str) -> "FeatureFilter":
        return cls(attribute=attribute)

    @property
    def is_empty(self) -> bool:
        return not self.values

    def matches(self, feature: RenderedFeature) -> bool:
        if not self.values:
            return False
        return feature.properties.get(self.attribute) in self.values
