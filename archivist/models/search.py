"""
# models/search.py
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class SearchResult(Generic[T]):
    """
    Tranche de résultats + nombre total de correspondances.

    total ne dépend pas de la limite demandée : l'appelant peut paginer sans
    relancer la requête de comptage.
    """

    items: list[T]
    total: int

    def __len__(self) -> int:
        return len(self.items)

    @property
    def truncated(self) -> bool:
        return self.total > len(self.items)
