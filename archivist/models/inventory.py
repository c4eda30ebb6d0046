"""# models/inventory.py"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(slots=True, kw_only=True)
class Inventory:
    """Fichier d'inventaire déjà indexé (table inventories)."""

    id: int | None = None
    path: str
    indexed_at: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Inventory:
        return cls(id=int(row["id"]), path=str(row["path"]), indexed_at=row["indexed_at"])
