from __future__ import annotations

from typing import Protocol, Sequence

from .model import Location


class LocationRepository(Protocol):
    def list_for_class(self, class_id: int) -> Sequence[Location]:
        """All locations linked to the class (active and inactive), ordered by id."""

        raise NotImplementedError
