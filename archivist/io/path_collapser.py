# archivist/io/path_collapser.py
"""
Repli des chemins physiques de l'archive sur l'arborescence publique.

Une grammaire (ex. "ignore/project/date") décrit le rôle des K premiers
segments d'un chemin physique : le segment `project` donne la catégorie, le
segment `date` (YYYY-MM-DD) ouvre le chemin public, les segments `ignore`
disparaissent du chemin public mais restent dans le chemin physique.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import os
from pathlib import Path, PurePosixPath
import re

from archivist.models.exceptions import ConfigurationError, ErrCode, MalformedPathError
from archivist.models.types import StrOrPath

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class PathRole(str, Enum):
    PROJECT = "project"
    DATE = "date"
    IGNORE = "ignore"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class PathGrammar:
    """
    Rôles ordonnés des premiers segments d'un chemin physique.

    Invariant : exactement un PROJECT, exactement un DATE, IGNORE libre.
    """

    roles: tuple[PathRole, ...]

    def __post_init__(self) -> None:
        projects = self.roles.count(PathRole.PROJECT)
        dates = self.roles.count(PathRole.DATE)
        if projects != 1 or dates != 1:
            raise ConfigurationError(
                "La grammaire doit contenir exactement un 'project' et un 'date'",
                code=ErrCode.CONFIG,
                ctx={"grammar": self.text, "project": projects, "date": dates},
            )

    @classmethod
    def parse(cls, text: str) -> PathGrammar:
        """
        "ignore/project/date" -> PathGrammar((IGNORE, PROJECT, DATE)).
        """
        roles: list[PathRole] = []
        for raw in text.split("/"):
            tag = raw.strip().lower()
            try:
                roles.append(PathRole(tag))
            except ValueError as exc:
                raise ConfigurationError(
                    f"Rôle de grammaire inconnu: {raw!r}", code=ErrCode.CONFIG, ctx={"grammar": text}
                ) from exc
        return cls(tuple(roles))

    @property
    def text(self) -> str:
        return "/".join(r.value for r in self.roles)

    def __len__(self) -> int:
        return len(self.roles)

    @property
    def project_index(self) -> int:
        return self.roles.index(PathRole.PROJECT)

    @property
    def date_index(self) -> int:
        return self.roles.index(PathRole.DATE)


@dataclass(slots=True, frozen=True)
class CollapsedPath:
    """
    Résultat du repli : catégorie, chemin public et chemin physique (relatif à l'archive).
    """

    category_name: str
    public_path: str
    physical_path: str
    prefix_len: int

    @property
    def depth(self) -> int:
        return self.public_path.count("/")

    @property
    def parent_public_path(self) -> str | None:
        parent = PurePosixPath(self.public_path).parent.as_posix()
        return None if parent == "." else parent

    def parent(self) -> CollapsedPath | None:
        """
        Dossier contenant self, déduit sans repasser par la grammaire ; None au premier niveau.
        """
        parent_public = self.parent_public_path
        if parent_public is None:
            return None
        return CollapsedPath(
            category_name=self.category_name,
            public_path=parent_public,
            physical_path=self.physical_path.rsplit("/", 1)[0],
            prefix_len=self.prefix_len,
        )

    def ancestors(self) -> Iterator[tuple[str, str]]:
        """
        Paires (chemin public, chemin physique) de chaque dossier, de la racine à self inclus.

        "2020-01-01/a/b" replié depuis "V/P/2020-01-01/a/b" donne
        ("2020-01-01", "V/P/2020-01-01"), ("2020-01-01/a", "V/P/2020-01-01/a"), ...
        """
        public_parts = self.public_path.split("/")
        physical_parts = self.physical_path.split("/")
        for i in range(1, len(public_parts) + 1):
            yield "/".join(public_parts[:i]), "/".join(physical_parts[: self.prefix_len - 1 + i])


def parent_public_paths(public_path: str) -> list[str]:
    """
    Chemins publics des ancêtres, du haut vers le bas ("a/b/c" -> ["a", "a/b"]).
    """
    parts = public_path.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts))]


class PathCollapser:
    """
    Applique une PathGrammar à des chemins physiques.

    La grammaire est validée à la construction : une configuration invalide
    échoue au démarrage, avant tout chemin traité.
    """

    def __init__(self, grammar: PathGrammar | str, archive_root: StrOrPath | None = None) -> None:
        self.grammar = PathGrammar.parse(grammar) if isinstance(grammar, str) else grammar
        # seule la racine configurée est nettoyée ; les chemins indexés restent tels quels
        self.archive_root = _normalize(os.fspath(archive_root).strip()).rstrip("/") if archive_root is not None else None

    def relative_segments(self, physical_path: StrOrPath) -> list[str]:
        """
        Segments du chemin relatif à la racine de l'archive.
        """
        raw = _normalize(physical_path)
        if self.archive_root:
            if raw == self.archive_root:
                raw = ""
            elif raw.startswith(self.archive_root + "/"):
                raw = raw[len(self.archive_root) + 1 :]
            elif raw.startswith("/"):
                raise MalformedPathError(
                    "Chemin absolu hors de l'archive",
                    code=ErrCode.PATH,
                    ctx={"path": raw, "archive_root": self.archive_root},
                )
        segments = [s for s in raw.split("/") if s and s != "."]
        if ".." in segments:
            raise MalformedPathError("Chemin hors archive (..)", code=ErrCode.PATH, ctx={"path": raw})
        return segments

    def collapse(self, physical_path: StrOrPath) -> CollapsedPath:
        segments = self.relative_segments(physical_path)
        k = len(self.grammar)
        if len(segments) < k:
            raise MalformedPathError(
                "Chemin plus court que la grammaire",
                code=ErrCode.PATH,
                ctx={"path": "/".join(segments), "grammar": self.grammar.text, "segments": len(segments)},
            )

        date_segment = segments[self.grammar.date_index]
        if not is_iso_date(date_segment):
            raise MalformedPathError(
                "Segment date invalide (YYYY-MM-DD attendu)",
                code=ErrCode.PATH,
                ctx={"path": "/".join(segments), "date": date_segment},
            )

        return CollapsedPath(
            category_name=segments[self.grammar.project_index],
            public_path="/".join([date_segment, *segments[k:]]),
            physical_path="/".join(segments),
            prefix_len=k,
        )


def is_iso_date(value: str) -> bool:
    if not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def _normalize(path: StrOrPath) -> str:
    s = os.fspath(path).replace("\\", "/")
    return Path(s).as_posix() if s else ""
