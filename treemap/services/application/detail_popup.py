"""
The single detail popup shown for a tree.
"""
from typing import Optional
from pydantic import BaseModel

from treemap.domain.models import TreeLocation, TreeSpecies


class PopupContent(BaseModel):
    """What the detail popup shows for one tree."""
    location_id: int
    common_name: str
    latin_name: str
    family: Optional[str] = None
    native_label: str
    conservation_status: Optional[str] = None
    source: str
    longitude: float
    latitude: float


def build_popup_content(tree: TreeLocation, species: Optional[TreeSpecies]) -> PopupContent:
    return PopupContent(
        location_id=tree.location_id,
        common_name=tree.common_name,
        latin_name=tree.latin_name,
        family=species.family if species else None,
        native_label="Native" if tree.is_native else "Non-Native",
        conservation_status=species.iucn_red_list_assessment if species else None,
        source=tree.source,
        longitude=tree.longitude,
        latitude=tree.latitude,
    )


class DetailPopup:
    """
    One popup slot. Opening a tree replaces whatever was shown before.
    """

    def __init__(self):
        self.content: Optional[PopupContent] = None

    @property
    def is_open(self) -> bool:
        return self.content is not None

    @property
    def location_id(self) -> Optional[int]:
        return self.content.location_id if self.content else None

    def open(self, tree: TreeLocation, species: Optional[TreeSpecies]) -> PopupContent:
        self.content = build_popup_content(tree, species)
        return self.content

    def remove(self) -> None:
        self.content = None
