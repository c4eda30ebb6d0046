"""
# models/archive_job.py
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
import json
from typing import Any

from archivist.models.exceptions import ErrCode, StorageError


def encode_list(values: tuple[str, ...] | list[str]) -> str:
    """
    Sérialise une liste ordonnée de chaînes en tableau JSON (pas de délimiteur à échapper).
    """
    return json.dumps(list(values), ensure_ascii=False)


def decode_list(raw: Any, *, column: str) -> tuple[str, ...]:
    """
    Inverse de encode_list ; lève StorageError si la colonne n'est pas un tableau de chaînes.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        values = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise StorageError("Colonne liste illisible", code=ErrCode.DB, ctx={"column": column}) from exc
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise StorageError("Colonne liste inattendue", code=ErrCode.DB, ctx={"column": column})
    return tuple(values)


@dataclass(slots=True, kw_only=True)
class ArchiveJob:
    """
    Miroir de la table `archive_jobs`.

    files et notification_emails sont figés à la création ; seuls
    next_attempt_at (jamais décroissant) et processed (False -> True, une fois)
    évoluent ensuite.
    """

    id: int | None = None
    created_at: datetime
    next_attempt_at: datetime
    files: tuple[str, ...] = field(default_factory=tuple)
    notification_emails: tuple[str, ...] = field(default_factory=tuple)
    processed: bool = False

    def is_ready(self, now: datetime) -> bool:
        return not self.processed and self.next_attempt_at <= now

    def to_insert_params(self) -> tuple[datetime, datetime, str, str, bool]:
        """
        Ordre: created_at, next_attempt_at, files, notification_emails, processed
        """
        return (
            self.created_at,
            self.next_attempt_at,
            encode_list(self.files),
            encode_list(self.notification_emails),
            self.processed,
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ArchiveJob:
        return cls(
            id=int(row["id"]),
            created_at=row["created_at"],
            next_attempt_at=row["next_attempt_at"],
            files=decode_list(row["files"], column="files"),
            notification_emails=decode_list(row["notification_emails"], column="notification_emails"),
            processed=bool(row["processed"]),
        )


@dataclass(slots=True, frozen=True)
class JobOutcome:
    """Résultat d'un passage de process_archive_job."""

    job: ArchiveJob
    succeeded: bool
