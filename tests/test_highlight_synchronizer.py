"""
Unit tests for highlight filter synchronization.
"""
import pytest

from treemap.domain.features import ClusterFeature
from treemap.infrastructure.map_layers import (
    CLUSTER_LAYER,
    HIGHLIGHTED_CLUSTER_LAYER,
    HIGHLIGHTED_POINT_LAYER,
    POINT_LAYER,
)
from treemap.services.domain.cluster_expansion import ClusterExpansionAdapter
from treemap.services.domain.highlight_synchronizer import (
    HighlightFilters,
    HighlightFilterSynchronizer,
    toggle_category,
)


@pytest.fixture
def synchronizer(map_engine) -> HighlightFilterSynchronizer:
    return HighlightFilterSynchronizer(map_engine, ClusterExpansionAdapter(map_engine))


def _cluster_by_size(engine, size) -> ClusterFeature:
    return next(
        c for c in engine.query_rendered_features(layers=[CLUSTER_LAYER])
        if c.point_count == size
    )


# ============================================================
# Filter Computation Tests
# ============================================================

class TestHighlight:
    """Tests for highlight filter computation."""

    @pytest.mark.asyncio
    async def test_no_category_matches_nothing(self, synchronizer):
        filters = await synchronizer.highlight(None)

        assert filters == HighlightFilters.none()
        assert filters.point_filter.is_empty
        assert filters.cluster_filter.is_empty

    @pytest.mark.asyncio
    async def test_marks_clusters_containing_category(self, synchronizer, map_engine):
        western = _cluster_by_size(map_engine, 3)
        eastern = _cluster_by_size(map_engine, 2)

        filters = await synchronizer.highlight("Pin Oak")

        assert filters.cluster_ids == sorted([western.cluster_id, eastern.cluster_id])

    @pytest.mark.asyncio
    async def test_only_matching_clusters_marked(self, synchronizer, map_engine):
        eastern = _cluster_by_size(map_engine, 2)

        filters = await synchronizer.highlight("Honey Locust")

        assert filters.cluster_ids == [eastern.cluster_id]

    @pytest.mark.asyncio
    async def test_point_filter_is_category_equality(self, synchronizer, map_engine):
        filters = await synchronizer.highlight("Red Maple")
        points = map_engine.query_rendered_features(layers=[POINT_LAYER])

        assert [p.tree.location_id for p in points if filters.point_filter.matches(p)] == [6]

    @pytest.mark.asyncio
    async def test_category_not_visible(self, synchronizer):
        filters = await synchronizer.highlight("Sugar Maple")

        assert filters.cluster_ids == []
        assert filters.category == "Sugar Maple"


# ============================================================
# Filter Application Tests
# ============================================================

class TestApply:
    """Tests for pushing filters to the overlay layers."""

    @pytest.mark.asyncio
    async def test_overlays_show_highlighted_features(self, synchronizer, map_engine):
        western = _cluster_by_size(map_engine, 3)

        synchronizer.apply(await synchronizer.highlight("Red Maple"))

        highlighted_points = map_engine.query_rendered_features(layers=[HIGHLIGHTED_POINT_LAYER])
        highlighted_clusters = map_engine.query_rendered_features(layers=[HIGHLIGHTED_CLUSTER_LAYER])
        assert [p.tree.location_id for p in highlighted_points] == [6]
        assert [c.cluster_id for c in highlighted_clusters] == [western.cluster_id]

    @pytest.mark.asyncio
    async def test_base_layers_untouched(self, synchronizer, map_engine):
        synchronizer.apply(await synchronizer.highlight("Pin Oak"))

        assert map_engine.get_filter(POINT_LAYER) is None
        assert map_engine.get_filter(CLUSTER_LAYER) is None

    @pytest.mark.asyncio
    async def test_clearing_empties_overlays(self, synchronizer, map_engine):
        synchronizer.apply(await synchronizer.highlight("Pin Oak"))
        synchronizer.apply(await synchronizer.highlight(None))

        assert map_engine.query_rendered_features(
            layers=[HIGHLIGHTED_POINT_LAYER, HIGHLIGHTED_CLUSTER_LAYER]
        ) == []


class TestToggleCategory:
    """Tests for toggle semantics."""

    def test_same_category_clears(self):
        assert toggle_category("Red Maple", "Red Maple") is None

    def test_other_category_replaces(self):
        assert toggle_category("Red Maple", "Pin Oak") == "Pin Oak"

    def test_select_from_none(self):
        assert toggle_category(None, "Pin Oak") == "Pin Oak"
