"""
API request models using Pydantic.
"""
from typing import Literal, Optional
from pydantic import BaseModel, Field


class HighlightRequest(BaseModel):
    """Select (or toggle off) a tree category in the sidebar."""
    common_name: Optional[str] = Field(
        default=None,
        description="Category to highlight; the highlighted one again clears it",
        examples=["Red Maple"]
    )


class ViewportRequest(BaseModel):
    """Move the map viewport."""
    longitude: float = Field(ge=-180, le=180, examples=[-71.09299])
    latitude: float = Field(ge=-85.05, le=85.05, examples=[42.38245])
    zoom: Optional[float] = Field(default=None, ge=0, le=22, examples=[15])


class PointerRequest(BaseModel):
    """A mouse or touch event on the map canvas."""
    type: Literal["mousedown", "mouseup", "touchstart", "touchend", "touchcancel"]
    x: float = Field(description="Screen x in pixels")
    y: float = Field(description="Screen y in pixels")
