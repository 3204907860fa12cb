"""
Application service: add and remove trees.
"""
import logging
from enum import Enum

from treemap.domain.entity_collection import TreeCollection
from treemap.domain.models import NewTreeLocation, TreeLocation
from treemap.infrastructure.external_api_client import ExternalAPIError, TreeAPIClient
from treemap.infrastructure.map_engine import ClusteredMapEngine
from treemap.infrastructure.map_layers import TREE_SOURCE
from treemap.services.application.detail_popup import DetailPopup

logger = logging.getLogger(__name__)

REMOVAL_CANCELLED_NOTICE = "Removal canceled."


class RemovalOutcome(str, Enum):
    REMOVED = "removed"
    CANCELLED = "cancelled"


class EntityMutationOrchestrator:
    """
    Applies confirmed adds and removes to the tree collection.

    The collection only changes after the API confirms a mutation; every
    change is pushed to the rendering engine so it re-clusters.
    """

    def __init__(
        self,
        api_client: TreeAPIClient,
        collection: TreeCollection,
        engine: ClusteredMapEngine,
        popup: DetailPopup,
    ):
        self.api_client = api_client
        self.collection = collection
        self.engine = engine
        self.popup = popup

    def _render(self) -> None:
        if self.engine.has_source(TREE_SOURCE):
            self.engine.set_data(TREE_SOURCE, self.collection.as_list())

    async def add_entity(self, candidate: NewTreeLocation) -> TreeLocation:
        """
        Submit a new tree and add the confirmed record to the collection.

        Raises:
            EntityValidationError: If the API rejects the candidate
            ExternalAPIError: If the API call fails
        """
        try:
            added = await self.api_client.create_entity(candidate)
        except ExternalAPIError as e:
            logger.warning(f"Error adding new tree '{candidate.common_name}': {e}")
            raise

        self.collection.append(added)
        self._render()
        logger.info(f"Added tree location {added.location_id} ({added.common_name})")
        return added

    async def remove_entity(self, location_id: int, removed_by: str) -> RemovalOutcome:
        """
        Delete a tree once a user has confirmed by name.

        An empty or blank name cancels the removal without calling the API.

        Raises:
            ExternalAPIError: If the API call fails
        """
        if not removed_by or not removed_by.strip():
            logger.info(f"Removal of tree location {location_id} canceled: no name given")
            return RemovalOutcome.CANCELLED

        try:
            await self.api_client.delete_entity(location_id, removed_by.strip())
        except ExternalAPIError as e:
            logger.warning(f"Error removing tree location {location_id}: {e}")
            raise

        self.collection.remove(location_id)
        self._render()
        if self.popup.location_id == location_id:
            self.popup.remove()
        logger.info(f"Removed tree location {location_id}")
        return RemovalOutcome.REMOVED
