"""Per-run identity set for collapsing overlapping search results."""

from typing import Set


class SeenPlaces:
    """Provider ids already handled in this run.

    Only covers a single invocation; across runs, records collapse on their
    slug when the writer overwrites the file.
    """

    def __init__(self) -> None:
        self._ids: Set[str] = set()

    def seen(self, place_id: str) -> bool:
        return place_id in self._ids

    def mark(self, place_id: str) -> None:
        self._ids.add(place_id)

    def __len__(self) -> int:
        return len(self._ids)
