"""
API router for tree endpoints.
"""
from fastapi import APIRouter, HTTPException, Path, Query, status
from typing import Annotated, List

from treemap.api.dependencies import MapSessionDep
from treemap.api.v1.models.responses import RemovalResponse
from treemap.domain.models import NewTreeLocation, TreeLocation, TreeSpecies
from treemap.infrastructure.external_api_client import EntityValidationError, NetworkError
from treemap.services.application.mutation_orchestrator import (
    REMOVAL_CANCELLED_NOTICE,
    RemovalOutcome,
)


router = APIRouter(
    tags=["trees"],
)


@router.get(
    "/trees",
    response_model=List[TreeLocation],
    summary="List tree locations",
)
async def list_trees(session: MapSessionDep) -> List[TreeLocation]:
    """Return every tree location known to the map view."""
    return session.collection.as_list()


@router.get(
    "/species",
    response_model=List[TreeSpecies],
    summary="List tree species",
)
async def list_species(session: MapSessionDep) -> List[TreeSpecies]:
    """Return species reference data."""
    return list(session.species.values())


@router.post(
    "/trees",
    response_model=TreeLocation,
    status_code=status.HTTP_201_CREATED,
    summary="Add a tree",
    description="""
    Submit a new tree to the tree inventory API.

    The tree is only added to the map once the API confirms it; a rejected or
    failed submission leaves the map unchanged and the new tree form open.
    """,
    responses={
        422: {"description": "The tree inventory API rejected the tree"},
        502: {"description": "The tree inventory API failed"},
    }
)
async def add_tree(candidate: NewTreeLocation, session: MapSessionDep) -> TreeLocation:
    """
    Add a tree.

    Args:
        candidate: The submitted tree
        session: Map view session (injected dependency)

    Returns:
        The confirmed tree location

    Raises:
        HTTPException: If the API rejects the tree or fails
    """
    try:
        return await session.submit_new_tree(candidate)
    except EntityValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.message,
        )
    except NetworkError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to add tree: {e.message}",
        )


@router.delete(
    "/trees/{location_id}",
    response_model=RemovalResponse,
    summary="Remove a tree",
    description="""
    Remove a tree after the user confirmed by entering their name.

    A missing or blank name cancels the removal without contacting the
    tree inventory API.
    """,
    responses={
        404: {"description": "Tree location not found"},
        502: {"description": "The tree inventory API failed"},
    }
)
async def remove_tree(
    location_id: Annotated[int, Path(description="Tree location to remove")],
    session: MapSessionDep,
    removed_by: Annotated[str, Query(description="Name confirming the removal")] = "",
) -> RemovalResponse:
    """
    Remove a tree.

    Args:
        location_id: Tree location to remove
        session: Map view session (injected dependency)
        removed_by: Name of the user confirming the removal

    Returns:
        RemovalResponse describing the outcome

    Raises:
        HTTPException: If the tree is unknown or the API call fails
    """
    if session.collection.get(location_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tree location '{location_id}' not found",
        )

    try:
        outcome = await session.remove_tree(location_id, removed_by)
    except NetworkError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to remove tree: {e.message}",
        )

    return RemovalResponse(
        location_id=location_id,
        status=outcome.value,
        message=REMOVAL_CANCELLED_NOTICE if outcome == RemovalOutcome.CANCELLED else None,
    )
