# archivist/models/exceptions.py
from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum  # py>=3.11
from typing import Any


class ErrCode(StrEnum):
    CONFIG = "CONFIG"
    PATH = "PATH"
    VALIDATION = "VALIDATION"
    INTEGRITY = "INTEGRITY"
    DB = "DB"


class ArchivistError(RuntimeError):
    """
    Erreur métier avec code + contexte structuré.
    """

    __slots__ = ("code", "ctx")

    default_code: ErrCode = ErrCode.DB

    def __init__(
        self,
        message: str,
        *,
        code: ErrCode | None = None,
        ctx: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code or self.default_code
        self.ctx: dict[str, Any] = dict(ctx or {})

    def with_context(self, extra: dict[str, Any]) -> ArchivistError:
        # N'écrase pas ce qui existe déjà
        for k, v in extra.items():
            self.ctx.setdefault(k, v)
        return self

    def __str__(self) -> str:  # utile dans les logs
        return f"{self.code}: {super().__str__()}"


class ConfigurationError(ArchivistError):
    """
    Grammaire de chemin invalide : fatal au démarrage, jamais retenté.
    """

    default_code = ErrCode.CONFIG


class MalformedPathError(ArchivistError):
    """Chemin physique incompatible avec la grammaire."""

    default_code = ErrCode.PATH


class ValidationError(ArchivistError):
    """Entrée refusée avant toute écriture (job sans fichier ou sans destinataire)."""

    default_code = ErrCode.VALIDATION


class DataIntegrityError(ArchivistError):
    """
    Conflit find-or-create (parent ou dossier différent).

    Signale un bug d'ingestion ou de grammaire, pas une condition transitoire.
    """

    default_code = ErrCode.INTEGRITY


class StorageError(ArchivistError):
    """Échec de la couche de persistance, la transaction englobante est annulée."""

    default_code = ErrCode.DB
