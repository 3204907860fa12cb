"""
Domain models for tree locations and species.

These models represent the core domain entities and should be independent
of any infrastructure concerns (API clients, rendering engines, etc.).
"""
from typing import Optional
from pydantic import BaseModel, Field


class Coordinate(BaseModel):
    """Geographic coordinate in degrees."""
    longitude: float
    latitude: float

    class Config:
        frozen = True


class TreeLocation(BaseModel):
    """A single planted tree, as confirmed by the tree inventory API."""
    location_id: int
    tree_id: int
    common_name: str = Field(description="Display name used to group trees")
    latin_name: str = ""
    latitude: float
    longitude: float
    source: str = ""
    is_native: bool = False

    class Config:
        frozen = True

    @property
    def category(self) -> str:
        return self.common_name

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(longitude=self.longitude, latitude=self.latitude)


class NewTreeLocation(BaseModel):
    """A tree submitted by a user that has not been assigned a location id yet."""
    tree_id: int
    common_name: str = Field(min_length=1)
    latin_name: str = ""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    source: str = ""
    is_native: bool = False


class TreeSpecies(BaseModel):
    """Species reference data, keyed by tree_id."""
    tree_id: int
    common_name: str = ""
    latin_name: str = ""
    family: Optional[str] = None
    iucn_red_list_assessment: Optional[str] = Field(
        default=None,
        description="Conservation status"
    )
