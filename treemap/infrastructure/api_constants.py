"""
API endpoint constants and configuration.

This module contains all tree inventory API endpoint paths and related constants.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


class TreeAPIEndpoints:
    """Tree inventory API endpoint paths."""

    TREE_LOCATIONS = "/tree-locations/"
    TREE_LOCATION_BY_ID = "/tree-locations/{location_id}/"
    TREES = "/trees/"

    @classmethod
    def get_tree_location(cls, location_id: int) -> str:
        """
        Get the endpoint for a single tree location.

        Args:
            location_id: Tree location ID

        Returns:
            Formatted endpoint path
        """
        return cls.TREE_LOCATION_BY_ID.format(location_id=location_id)


class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Timeouts (in seconds)
    DEFAULT_TIMEOUT = 30.0

    # Status codes the API uses for rejected submissions
    VALIDATION_STATUS_CODES = (400, 422)
