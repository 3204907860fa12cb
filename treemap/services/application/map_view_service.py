"""
Application service: one interactive map view.

Owns the rendering engine, the tree collection, the detail popup, the gesture
recognizer and the sidebar state, and keeps them consistent as the viewport
changes and trees are added or removed.
"""
import asyncio
import logging
from typing import Optional

from pydantic import BaseModel

from treemap.config import Settings, settings
from treemap.domain.entity_collection import TreeCollection
from treemap.domain.features import ClusterFeature, PointFeature
from treemap.domain.models import Coordinate, NewTreeLocation, TreeLocation, TreeSpecies
from treemap.infrastructure.external_api_client import TreeAPIClient
from treemap.infrastructure.map_engine import (
    POINTER_EVENTS,
    VIEWPORT_EVENTS,
    ClusteredMapEngine,
    PointerEvent,
)
from treemap.infrastructure.map_layers import (
    CLUSTER_LAYER,
    POINT_LAYER,
    TREE_SOURCE,
    ClusterConfig,
    build_tree_layers,
)
from treemap.services.application.detail_popup import DetailPopup
from treemap.services.application.mutation_orchestrator import (
    EntityMutationOrchestrator,
    RemovalOutcome,
)
from treemap.services.domain.category_aggregator import (
    CategoryAggregation,
    VisibleCategoryAggregator,
)
from treemap.services.domain.cluster_expansion import ClusterExpansionAdapter
from treemap.services.domain.gesture_state_machine import (
    PRESS_START_EVENTS,
    CreateIntent,
    GestureStateMachine,
)
from treemap.services.domain.highlight_synchronizer import (
    HighlightFilters,
    HighlightFilterSynchronizer,
    toggle_category,
)
from treemap.utils.scheduling import Debouncer, LoopScheduler, Scheduler

logger = logging.getLogger(__name__)


class NewTreeForm(BaseModel):
    """The new tree form, opened by a long press at a coordinate."""
    coordinate: Coordinate


class MapViewSession:
    """
    Coordinates the map, the sidebar and user interaction for one view.

    Event handlers are only attached to the engine once the map is loaded,
    tree data is fetched and the tree layers exist, and are detached again by
    ``close``.
    """

    def __init__(
        self,
        api_client: TreeAPIClient,
        engine: Optional[ClusteredMapEngine] = None,
        scheduler: Optional[Scheduler] = None,
        config: Settings = settings,
    ):
        self.api_client = api_client
        self.config = config
        self.engine = engine or ClusteredMapEngine(
            center=Coordinate(
                longitude=config.map_center_longitude,
                latitude=config.map_center_latitude,
            ),
            zoom=config.map_zoom,
            width=config.map_width,
            height=config.map_height,
        )
        self.scheduler = scheduler or LoopScheduler()

        self.collection = TreeCollection()
        self.species: dict[int, TreeSpecies] = {}
        self.popup = DetailPopup()

        self.adapter = ClusterExpansionAdapter(self.engine, TREE_SOURCE)
        self.aggregator = VisibleCategoryAggregator(self.adapter)
        self.synchronizer = HighlightFilterSynchronizer(self.engine, self.adapter)
        self.gestures = GestureStateMachine(
            hit_test=self._hits_feature,
            on_empty_press=self.popup.remove,
            on_long_press=self._open_new_tree_form,
            dwell=config.long_press_dwell_ms / 1000,
            scheduler=self.scheduler,
        )
        self.mutations = EntityMutationOrchestrator(
            api_client=api_client,
            collection=self.collection,
            engine=self.engine,
            popup=self.popup,
        )
        self._viewport_debouncer = Debouncer(
            config.viewport_debounce_ms / 1000,
            self.sync_view,
            scheduler=self.scheduler,
        )

        self.map_ready = False
        self.data_loaded = False
        self.layers_loaded = False

        self.visible_categories = CategoryAggregation.empty()
        self.highlighted_category: Optional[str] = None
        self.highlight_filters = HighlightFilters.none()
        self.new_tree_form: Optional[NewTreeForm] = None

        self._generation = 0
        self._subscriptions: list[tuple[str, object, Optional[str]]] = []

    @property
    def ready(self) -> bool:
        return self.map_ready and self.data_loaded and self.layers_loaded

    @property
    def generation(self) -> int:
        return self._generation

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load data, add the tree layers, build the sidebar and attach handlers."""
        if not self.engine.loaded:
            self.engine.load()
        self.map_ready = True

        await self.load_data()
        self._add_tree_layers()
        await self.sync_view()
        self.layers_loaded = True
        self._install_subscriptions()
        logger.info(
            f"Map view ready: {len(self.collection)} trees, "
            f"{len(self.visible_categories.groups)} visible categories"
        )

    async def load_data(self) -> None:
        trees, species = await asyncio.gather(
            self.api_client.fetch_entities(),
            self.api_client.fetch_species(),
        )
        self.collection.replace_all(trees)
        self.species = species
        self.data_loaded = True
        logger.info(f"Loaded {len(trees)} tree locations and {len(species)} species")

    def _add_tree_layers(self) -> None:
        self.engine.add_clustered_source(
            TREE_SOURCE,
            self.collection.as_list(),
            ClusterConfig(
                max_zoom=self.config.cluster_max_zoom,
                radius=self.config.cluster_radius,
            ),
        )
        for layer in build_tree_layers():
            self.engine.add_layer(layer)

    def _install_subscriptions(self) -> bool:
        if self._subscriptions:
            return True
        if not self.ready:
            logger.debug("Map view not ready; event handlers not attached")
            return False

        subscriptions = [(event, self.gestures.handle, None) for event in POINTER_EVENTS]
        subscriptions += [(event, self._open_popup, POINT_LAYER) for event in PRESS_START_EVENTS]
        subscriptions += [(event, self._on_viewport_change, None) for event in VIEWPORT_EVENTS]

        for event_type, handler, layer_id in subscriptions:
            self.engine.on(event_type, handler, layer_id)
        self._subscriptions = subscriptions
        logger.debug(f"Attached {len(subscriptions)} map event handlers")
        return True

    async def close(self) -> None:
        """Detach every handler and stop pending timers and refreshes."""
        for event_type, handler, layer_id in self._subscriptions:
            self.engine.off(event_type, handler, layer_id)
        self._subscriptions = []
        self._viewport_debouncer.cancel()
        self.gestures.cancel()
        logger.info("Map view closed")

    async def wait_idle(self) -> None:
        """Wait until every started sidebar refresh has finished."""
        await self._viewport_debouncer.drain()

    # ------------------------------------------------------------------
    # Sidebar and highlight
    # ------------------------------------------------------------------

    async def sync_view(self) -> bool:
        """
        Recompute highlight filters and the sidebar for the current viewport.

        Returns False when a newer refresh started before this one finished,
        in which case nothing is published.
        """
        self._generation += 1
        generation = self._generation
        category = self.highlighted_category

        rendered = self.engine.query_rendered_features(layers=[POINT_LAYER, CLUSTER_LAYER])
        points = [f for f in rendered if isinstance(f, PointFeature)]
        clusters = [f for f in rendered if isinstance(f, ClusterFeature)]

        filters, aggregation = await asyncio.gather(
            self.synchronizer.highlight(category),
            self.aggregator.aggregate(points, clusters),
        )

        if generation != self._generation:
            logger.debug(f"Discarding refresh {generation}; refresh {self._generation} is newer")
            return False

        self.synchronizer.apply(filters)
        self.highlight_filters = filters
        self.visible_categories = aggregation
        return True

    async def select_category(self, category: Optional[str]) -> Optional[str]:
        """Toggle the highlighted category and refresh the view."""
        self.highlighted_category = toggle_category(self.highlighted_category, category)
        await self.sync_view()
        return self.highlighted_category

    def _on_viewport_change(self, event) -> None:
        self._viewport_debouncer.trigger()

    # ------------------------------------------------------------------
    # Pointer interaction
    # ------------------------------------------------------------------

    def _hits_feature(self, point: tuple[float, float]) -> bool:
        return bool(self.engine.query_rendered_features(
            point=point, layers=[POINT_LAYER, CLUSTER_LAYER]
        ))

    def _open_popup(self, event: PointerEvent) -> None:
        feature = next((f for f in event.features if isinstance(f, PointFeature)), None)
        if feature is None:
            return
        tree = feature.tree
        self.popup.open(tree, self.species.get(tree.tree_id))

    def _open_new_tree_form(self, intent: CreateIntent) -> None:
        self.new_tree_form = NewTreeForm(coordinate=intent.coordinate)
        logger.info(f"New tree form opened at {intent.coordinate}")

    def cancel_new_tree_form(self) -> None:
        self.new_tree_form = None

    def handle_escape(self) -> None:
        self.popup.remove()
        self.cancel_new_tree_form()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    # A confirmed mutation rebuilds the cluster index, so every cluster id the
    # highlight filters and sidebar hold is stale until the next refresh.

    async def submit_new_tree(self, candidate: NewTreeLocation) -> TreeLocation:
        added = await self.mutations.add_entity(candidate)
        self.new_tree_form = None
        await self.sync_view()
        return added

    async def remove_tree(self, location_id: int, removed_by: str) -> RemovalOutcome:
        outcome = await self.mutations.remove_entity(location_id, removed_by)
        if outcome == RemovalOutcome.REMOVED:
            await self.sync_view()
        return outcome
