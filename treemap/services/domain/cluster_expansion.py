"""
Domain service: resolve rendered clusters to their member trees.
"""
import logging

from treemap.domain.models import TreeLocation
from treemap.infrastructure.map_engine import ClusteredMapEngine, ClusterNotFoundError
from treemap.infrastructure.map_layers import TREE_SOURCE

logger = logging.getLogger(__name__)


class ClusterExpansionError(Exception):
    """The cluster id is not part of the engine's current index snapshot."""

    def __init__(self, cluster_id: int):
        super().__init__(f"Cluster {cluster_id} is not in the current index")
        self.cluster_id = cluster_id


class ClusterExpansionAdapter:
    """
    Expands cluster ids into every leaf tree they contain.

    Cluster ids are only valid for the snapshot they were queried from, so
    results are never cached.
    """

    def __init__(self, engine: ClusteredMapEngine, source_id: str = TREE_SOURCE):
        self.engine = engine
        self.source_id = source_id

    async def expand(self, cluster_id: int) -> list[TreeLocation]:
        """
        Resolve all descendant leaves of a cluster.

        Raises:
            ClusterExpansionError: If the index was rebuilt since the id was issued
        """
        try:
            return await self.engine.get_cluster_leaves(self.source_id, cluster_id)
        except ClusterNotFoundError:
            raise ClusterExpansionError(cluster_id)

    async def members(self, cluster_id: int) -> list[TreeLocation]:
        """Like ``expand``, but a stale cluster counts as having no members."""
        try:
            return await self.expand(cluster_id)
        except ClusterExpansionError as e:
            logger.debug(f"{e}; treating as empty")
            return []
