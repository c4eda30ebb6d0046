"""# models/category.py"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, kw_only=True)
class Category:
    """Miroir de la table categories (un projet de l'archive)."""

    id: int | None = None
    name: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Category:
        return cls(id=int(row["id"]), name=str(row["name"]))
