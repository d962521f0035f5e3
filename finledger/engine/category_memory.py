"""
Category Memory

Learns which category a transaction name belongs to and suggests it
for new transactions with the same name.

Names are normalized (trimmed, lowercased) so " Rent " and "rent" share
one entry. Each name maps to exactly one category; the most recent
association wins. This is not an index of historical names.
"""

from typing import Optional
from uuid import UUID


def normalize_name(name: str) -> str:
    return name.strip().lower()


class CategoryMemory:
    """Mapping from normalized transaction name to category id."""

    def __init__(self, entries: Optional[dict[str, UUID]] = None):
        self._entries: dict[str, UUID] = dict(entries or {})

    def learn(self, name: str, category_id: Optional[UUID]) -> bool:
        """
        Remember category_id for name.

        No-op (returns False) when category_id is None or the
        normalized name is empty.
        """
        if category_id is None:
            return False
        key = normalize_name(name)
        if not key:
            return False
        self._entries[key] = category_id
        return True

    def suggest(self, name: str) -> Optional[UUID]:
        return self._entries.get(normalize_name(name))

    def forget_category(self, category_id: UUID) -> int:
        """Drop every entry pointing at category_id; returns how many were dropped."""
        stale = [k for k, v in self._entries.items() if v == category_id]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def as_dict(self) -> dict[str, UUID]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._entries
