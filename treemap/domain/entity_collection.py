"""
The authoritative, ordered collection of trees known to the client.
"""
from typing import Iterable, Iterator, Optional

from treemap.domain.models import TreeLocation


class TreeCollection:
    """
    Mutable ordered sequence of TreeLocation records.

    This is the single source of truth fed to the rendering engine; the engine
    only ever sees snapshots of it via ``as_list``.
    """

    def __init__(self, trees: Optional[Iterable[TreeLocation]] = None):
        self._trees: list[TreeLocation] = list(trees or [])

    def __len__(self) -> int:
        return len(self._trees)

    def __iter__(self) -> Iterator[TreeLocation]:
        return iter(self._trees)

    def __contains__(self, location_id: object) -> bool:
        return any(t.location_id == location_id for t in self._trees)

    def replace_all(self, trees: Iterable[TreeLocation]) -> None:
        self._trees = list(trees)

    def append(self, tree: TreeLocation) -> None:
        self._trees.append(tree)

    def get(self, location_id: int) -> Optional[TreeLocation]:
        for tree in self._trees:
            if tree.location_id == location_id:
                return tree
        return None

    def remove(self, location_id: int) -> bool:
        """Remove a tree by identity. Returns False if it was not present."""
        remaining = [t for t in self._trees if t.location_id != location_id]
        removed = len(remaining) != len(self._trees)
        self._trees = remaining
        return removed

    def as_list(self) -> list[TreeLocation]:
        return list(self._trees)
