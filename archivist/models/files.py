"""
# models/files.py
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from archivist.models.category import Category
from archivist.models.folders import Folder, path_depth


@dataclass(slots=True, kw_only=True)
class ArchiveFile:
    """
    Miroir de la table `files`.

    full_path est l'emplacement réel, relatif à la racine de l'archive ;
    public_path est le chemin replié affiché aux utilisateurs.
    """

    id: int | None = None
    category_id: int
    folder_id: int | None = None  # None pour un fichier de premier niveau
    public_path: str
    full_path: str
    depth: int | None = None  # None = déduite de public_path

    # ---- transients (non stockés) ---------------------------------------------
    category: Category | None = field(default=None, repr=False, compare=False)
    folder: Folder | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.public_path = PurePosixPath(self.public_path).as_posix()
        if self.depth is None:
            self.depth = path_depth(self.public_path)

    @property
    def name(self) -> str:
        return PurePosixPath(self.public_path).name

    def absolute_path(self, archive_root: str | Path | None = None) -> str:
        """
        Chemin absolu POSIX du fichier (full_path sous archive_root).
        """
        if archive_root is None:
            return PurePosixPath(self.full_path).as_posix()
        return (PurePosixPath(Path(archive_root).as_posix()) / self.full_path).as_posix()

    def to_insert_params(self) -> tuple[int, int | None, str, str, int]:
        """
        Ordre: category_id, folder_id, public_path, full_path, depth
        """
        return (self.category_id, self.folder_id, self.public_path, self.full_path, self.depth)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ArchiveFile:
        return cls(
            id=int(row["id"]),
            category_id=int(row["category_id"]),
            folder_id=(int(row["folder_id"]) if row.get("folder_id") is not None else None),
            public_path=str(row["public_path"]),
            full_path=str(row["full_path"]),
            depth=int(row["depth"]),
        )
