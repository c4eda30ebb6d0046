"""
# models/folders.py
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

from archivist.models.category import Category


def path_depth(public_path: str) -> int:
    """
    Profondeur = nombre de séparateurs dans le chemin public.
    """
    return public_path.count("/")


@dataclass(slots=True, kw_only=True)
class Folder:
    """
    Représente une ligne de la table `folders` (arborescence logique repliée).

    Attributes:
        id: PK auto-incrément (None avant insert).
        category_id: FK catégorie.
        parent_id: FK dossier parent, None pour un dossier de premier niveau.
        public_path: chemin public (unique dans la catégorie).
        name: dernier segment du chemin public.
        depth: nombre de séparateurs dans public_path.
    """

    id: int | None = None
    category_id: int
    parent_id: int | None = None
    public_path: str
    name: str = ""
    depth: int | None = None  # None = déduite de public_path

    # ---- transients (non stockés) ---------------------------------------------
    category: Category | None = field(default=None, repr=False, compare=False)
    parent: Folder | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.public_path = PurePosixPath(self.public_path).as_posix()
        if not self.name:
            self.name = PurePosixPath(self.public_path).name
        if self.depth is None:
            self.depth = path_depth(self.public_path)

    def to_insert_params(self) -> tuple[int, int | None, str, str, int]:
        """
        Ordre: category_id, folder_id, public_path, name, depth
        """
        return (self.category_id, self.parent_id, self.public_path, self.name, self.depth)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Folder:
        """
        Construit depuis un DictCursor (row['id'], ...).
        """
        return cls(
            id=int(row["id"]),
            category_id=int(row["category_id"]),
            parent_id=(int(row["folder_id"]) if row.get("folder_id") is not None else None),
            public_path=str(row["public_path"]),
            name=str(row["name"]),
            depth=int(row["depth"]),
        )


@dataclass(slots=True, kw_only=True)
class RealFolder:
    """
    Dossier physique de l'archive, replié (many-to-one) sur un Folder logique.
    """

    id: int | None = None
    folder_id: int
    full_path: str

    folder: Folder | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> RealFolder:
        return cls(id=int(row["id"]), folder_id=int(row["folder_id"]), full_path=str(row["full_path"]))
