"""
models/app_entry.py – Immutable data models for catalogue apps and their DLC.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Tuple

from dlc_catalog.services.search_service import comparable_name

# Name given to a DLC whose real title could not be resolved.
PLACEHOLDER_TEMPLATE: str = "Unknown DLC {app_id}"


@dataclass(frozen=True)
class AppEntry:
    """
    Represents one app in the Steam catalogue.

    Two entries are equal when their ``app_id`` matches; the name is metadata.

    Attributes
    ----------
    app_id          : Steam app id.
    name            : Human-readable app name.
    comparable_name : Name stripped of special characters and lower-cased,
                      precomputed for exact-name lookups.
    """

    app_id: int
    name: str = field(compare=False)
    comparable_name: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "comparable_name", comparable_name(self.name))

    def __str__(self) -> str:
        return f"{self.name} ({self.app_id})"


class Catalog:
    """
    Immutable snapshot of the whole catalogue.

    Built wholesale from an iterable of entries. When the same id appears more
    than once the first occurrence is kept.
    """

    __slots__ = ("_by_id", "_entries")

    def __init__(self, entries: Iterable[AppEntry]) -> None:
        by_id: Dict[int, AppEntry] = {}
        for entry in entries:
            by_id.setdefault(entry.app_id, entry)
        self._by_id = by_id
        self._entries: Tuple[AppEntry, ...] = tuple(by_id.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[AppEntry]:
        return iter(self._entries)

    def __contains__(self, app_id: object) -> bool:
        return app_id in self._by_id

    def get(self, app_id: int) -> Optional[AppEntry]:
        return self._by_id.get(app_id)


@dataclass(frozen=True)
class DlcRecord:
    """
    A single DLC resolved for a parent app.

    Attributes
    ----------
    app_id   : Steam app id of the DLC.
    name     : Display name, or the ``Unknown DLC <id>`` placeholder.
    resolved : False while ``name`` is only a placeholder.
    """

    app_id: int
    name: str
    resolved: bool = True

    @classmethod
    def placeholder(cls, app_id: int) -> "DlcRecord":
        return cls(app_id=app_id, name=PLACEHOLDER_TEMPLATE.format(app_id=app_id), resolved=False)

    def __str__(self) -> str:
        return f"{self.app_id}={self.name}"
