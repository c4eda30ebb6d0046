"""
# sql/db_utils.py
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from archivist.models.cursor_protocol import DictCursorProtocol
from archivist.models.exceptions import DataIntegrityError, ErrCode, StorageError
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger

# Typing selon ce que pymysql accepte réellement
ParamsType = tuple[Any, ...] | dict[str, Any]

LIKE_ESCAPE = "!"


@with_child_logger
def safe_execute_dict(
    cursor: DictCursorProtocol,
    query: str,
    params: ParamsType | None = None,
    *,
    logger: LoggerProtocol | None = None,
) -> DictCursorProtocol:
    """
    Exécute une requête après avoir flush le curseur.

    Args:
        cursor: curseur DB conforme au protocole minimal.
        query: requête SQL (placeholders %s).
        params: paramètres positionnels (tuple) ou nommés (dict).

    Returns:
        Le même curseur (chaînable avec .fetchone() / .fetchall()).

    Raises:
        StorageError: toute erreur du driver, avec la requête en contexte.
    """
    logger = ensure_logger(logger, __name__)
    try:
        flush_dict_cursor(cursor, logger=logger)
        if params is not None:
            cursor.execute(query, params)
        else:
            cursor.execute(query)
        return cursor
    except Exception as exc:
        raise StorageError("Erreur requête DB", code=ErrCode.DB, ctx={"query": query}) from exc


@with_child_logger
def flush_dict_cursor(cursor: DictCursorProtocol, *, logger: LoggerProtocol | None = None) -> None:
    """
    Vide proprement le curseur (jeux de résultats non consommés d'un appel précédent).
    """
    logger = ensure_logger(logger, __name__)
    try:
        while cursor.nextset():
            pass
    except Exception as exc:  # pylint: disable=broad-except
        logger.debug("flush_cursor: ignore exception while draining cursor: %s", exc)


def placeholders(count: int) -> str:
    """
    "%s, %s, ..." pour une clause IN de count éléments.
    """
    return ", ".join(["%s"] * count)


def like_contains(term: str) -> str:
    """
    Motif LIKE « contient term », jokers échappés avec LIKE_ESCAPE.
    """
    return f"%{escape_like(term)}%"


def like_prefix(prefix: str) -> str:
    return f"{escape_like(prefix)}%"


def escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


def chunked(values: Sequence[Any], size: int) -> list[Sequence[Any]]:
    """
    Découpe values en tranches de size éléments au plus.
    """
    if size <= 0:
        raise ValueError("size doit être > 0")
    return [values[i : i + size] for i in range(0, len(values), size)]


def require_id(record: Any) -> int:
    """
    Id persisté d'un enregistrement ; DataIntegrityError s'il n'a jamais été inséré.
    """
    if getattr(record, "id", None) is None:
        raise DataIntegrityError(
            "Enregistrement non persisté (id manquant)",
            code=ErrCode.INTEGRITY,
            ctx={"record": type(record).__name__},
        )
    return int(record.id)
