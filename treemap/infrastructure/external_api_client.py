"""
Infrastructure layer: Tree inventory API client with retry logic.
"""
import logging
from typing import List, Dict, Any, Optional
from pydantic import ValidationError as PydanticValidationError
import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from treemap.config import settings
from treemap.domain.models import NewTreeLocation, TreeLocation, TreeSpecies
from treemap.infrastructure.api_constants import APIConstants, TreeAPIEndpoints

logger = logging.getLogger(__name__)


class ExternalAPIError(Exception):
    """Base exception for tree inventory API errors."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkError(ExternalAPIError):
    """The API could not be reached or failed to process the request."""
    pass


class EntityValidationError(ExternalAPIError):
    """The API rejected a submitted tree."""

    def __init__(self, message: str, status_code: int = 422):
        super().__init__(message, status_code)


class TreeAPIClient:
    """
    Client for the tree inventory API.
    Implements retry logic with exponential backoff.
    """

    def __init__(self):
        """Initialize the API client with configuration."""
        self.base_url = settings.external_api_base_url
        self.api_key = settings.external_api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "accept": APIConstants.CONTENT_TYPE_JSON,
            },
            timeout=APIConstants.DEFAULT_TIMEOUT,
        )

    async def __aenter__(self) -> "TreeAPIClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Any:
        """
        Make an HTTP request with retry logic.

        Server errors (5xx) and transport errors are retried; client errors
        are not.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            Response data decoded from JSON, or None for empty bodies

        Raises:
            EntityValidationError: If the API rejects the request payload
            ExternalAPIError: On any other client error
            httpx.HTTPStatusError: On a server error once retries are exhausted
            httpx.RequestError: On a transport error once retries are exhausted
        """
        response = await self.client.request(method, endpoint, **kwargs)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            # Retry on server errors (5xx)
            if status_code >= 500:
                raise
            message = f"API request failed: {status_code} - {e.response.text}"
            if status_code in APIConstants.VALIDATION_STATUS_CODES:
                raise EntityValidationError(message, status_code)
            raise ExternalAPIError(message, status_code)

        if not response.content:
            return None
        return response.json()

    async def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        """
        Make a request, converting exhausted retries into NetworkError.
        """
        try:
            return await self._make_request(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"API request failed: {e.response.status_code} - {e.response.text}",
                status_code=502,
            )
        except httpx.RequestError as e:
            raise NetworkError(f"API request error: {str(e)}", status_code=503)

    async def fetch_entities(self) -> List[TreeLocation]:
        """
        Fetch every known tree location.

        Returns:
            List of TreeLocation instances

        Raises:
            ExternalAPIError: If the request fails
        """
        data = await self._request("GET", TreeAPIEndpoints.TREE_LOCATIONS)
        return [TreeLocation(**item) for item in data or []]

    async def fetch_species(self) -> Dict[int, TreeSpecies]:
        """
        Fetch species reference data.

        Returns:
            Mapping of tree_id to TreeSpecies

        Raises:
            ExternalAPIError: If the request fails
        """
        data = await self._request("GET", TreeAPIEndpoints.TREES)
        species = [TreeSpecies(**item) for item in data or []]
        return {s.tree_id: s for s in species}

    async def create_entity(self, candidate: NewTreeLocation) -> TreeLocation:
        """
        Submit a new tree location.

        Args:
            candidate: The tree the user submitted

        Returns:
            The server-confirmed TreeLocation with its assigned location_id

        Raises:
            EntityValidationError: If the API rejects the candidate
            NetworkError: If the API is unreachable or fails
        """
        data = await self._request(
            "POST",
            TreeAPIEndpoints.TREE_LOCATIONS,
            json=candidate.model_dump(),
        )
        try:
            return TreeLocation(**(data or {}))
        except PydanticValidationError as e:
            raise NetworkError(f"Malformed tree location in API response: {e}")

    async def delete_entity(self, location_id: int, removed_by: str) -> None:
        """
        Delete a tree location on behalf of a named user.

        Args:
            location_id: Tree location to delete
            removed_by: Name of the user confirming the removal

        Raises:
            ExternalAPIError: If the request fails
        """
        await self._request(
            "DELETE",
            TreeAPIEndpoints.get_tree_location(location_id),
            params={"removed_by": removed_by},
        )
        logger.info(f"Deleted tree location {location_id} (removed by {removed_by})")


# Singleton instance
_api_client: Optional[TreeAPIClient] = None


def get_api_client() -> TreeAPIClient:
    """
    Get or create the singleton API client instance.

    Returns:
        TreeAPIClient instance
    """
    global _api_client
    if _api_client is None:
        _api_client = TreeAPIClient()
    return _api_client
