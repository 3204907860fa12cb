"""
API router for the interactive map view.

These endpoints stand in for the browser: they feed viewport, pointer and
keyboard events into the map view and expose what the sidebar, popup and new
tree form should show.
"""
from typing import Optional
from fastapi import APIRouter, status

from treemap.api.dependencies import MapSessionDep
from treemap.api.v1.models.requests import HighlightRequest, PointerRequest, ViewportRequest
from treemap.api.v1.models.responses import (
    HighlightResponse,
    PointerResponse,
    VisibleTreeEntry,
    VisibleTreesResponse,
)
from treemap.domain.models import Coordinate
from treemap.services.application.detail_popup import PopupContent
from treemap.services.application.map_view_service import MapViewSession, NewTreeForm


router = APIRouter(
    prefix="/map",
    tags=["map"],
)


def _highlight_response(session: MapViewSession) -> HighlightResponse:
    return HighlightResponse(
        common_name=session.highlighted_category,
        highlighted_cluster_ids=session.highlight_filters.cluster_ids,
    )


@router.get(
    "/visible-trees",
    response_model=VisibleTreesResponse,
    summary="Trees visible in the viewport",
    description="""
    Tree categories visible in the current viewport, ordered by the number of
    map features (points or clusters) that contain each category.
    """,
)
async def get_visible_trees(session: MapSessionDep) -> VisibleTreesResponse:
    return VisibleTreesResponse(
        highlighted=session.highlighted_category,
        trees=[
            VisibleTreeEntry(
                common_name=group.category,
                count=group.count,
                highlighted=group.category == session.highlighted_category,
            )
            for group in session.visible_categories.groups
        ],
    )


@router.get("/highlight", response_model=HighlightResponse, summary="Current highlight")
async def get_highlight(session: MapSessionDep) -> HighlightResponse:
    return _highlight_response(session)


@router.post("/highlight", response_model=HighlightResponse, summary="Toggle a highlight")
async def set_highlight(request: HighlightRequest, session: MapSessionDep) -> HighlightResponse:
    """Highlight a category; highlighting the current one clears it."""
    await session.select_category(request.common_name)
    return _highlight_response(session)


@router.put(
    "/viewport",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Move the viewport",
    description="""
    Move the map. The sidebar and highlight refresh once the viewport has
    been still for the debounce window.
    """,
)
async def move_viewport(request: ViewportRequest, session: MapSessionDep) -> dict:
    session.engine.jump_to(
        Coordinate(longitude=request.longitude, latitude=request.latitude),
        request.zoom,
    )
    return {
        "longitude": session.engine.center.longitude,
        "latitude": session.engine.center.latitude,
        "zoom": session.engine.zoom,
    }


@router.post("/pointer", response_model=PointerResponse, summary="Pointer event")
async def pointer_event(request: PointerRequest, session: MapSessionDep) -> PointerResponse:
    event = session.engine.fire_pointer(request.type, request.x, request.y)
    gestures = session.gestures
    return PointerResponse(
        gesture_state=gestures.state.value,
        last_resolution=gestures.last_resolution.value if gestures.last_resolution else None,
        coordinate=event.lnglat,
        popup_location_id=session.popup.location_id,
        new_tree_form_open=session.new_tree_form is not None,
    )


@router.post("/escape", status_code=status.HTTP_204_NO_CONTENT, summary="Escape key")
async def escape(session: MapSessionDep) -> None:
    """Close the popup and any pending new tree form."""
    session.handle_escape()


@router.get("/popup", response_model=Optional[PopupContent], summary="Detail popup")
async def get_popup(session: MapSessionDep) -> Optional[PopupContent]:
    return session.popup.content


@router.get("/new-tree-form", response_model=Optional[NewTreeForm], summary="New tree form")
async def get_new_tree_form(session: MapSessionDep) -> Optional[NewTreeForm]:
    return session.new_tree_form


@router.delete(
    "/new-tree-form",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel the new tree form",
)
async def cancel_new_tree_form(session: MapSessionDep) -> None:
    session.cancel_new_tree_form()
