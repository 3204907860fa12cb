"""
API response models using Pydantic.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from treemap.domain.models import Coordinate


class VisibleTreeEntry(BaseModel):
    """One sidebar row."""
    common_name: str = Field(
        description="Tree category",
        examples=["Red Maple"]
    )
    count: int = Field(
        description="Number of visible map features containing this category"
    )
    highlighted: bool = False


class VisibleTreesResponse(BaseModel):
    """Response model for the visible trees sidebar."""
    highlighted: Optional[str] = Field(
        default=None,
        description="Currently highlighted category"
    )
    trees: List[VisibleTreeEntry]

    class Config:
        json_schema_extra = {
            "example": {
                "highlighted": "Red Maple",
                "trees": [
                    {"common_name": "Red Maple", "count": 3, "highlighted": True},
                    {"common_name": "Pin Oak", "count": 1, "highlighted": False},
                ]
            }
        }


class HighlightResponse(BaseModel):
    """Current highlight state and overlay filters."""
    common_name: Optional[str] = None
    highlighted_cluster_ids: List[int] = Field(default_factory=list)


class PointerResponse(BaseModel):
    """Interaction state after a pointer event."""
    gesture_state: str
    last_resolution: Optional[str] = None
    coordinate: Coordinate
    popup_location_id: Optional[int] = None
    new_tree_form_open: bool = False


class RemovalResponse(BaseModel):
    """Result of a removal request."""
    location_id: int
    status: str
    message: Optional[str] = None
