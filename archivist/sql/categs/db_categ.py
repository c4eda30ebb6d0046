"""
# sql/categs/db_categ.py
"""

from __future__ import annotations

from collections.abc import Iterable

from archivist.models.category import Category
from archivist.models.cursor_protocol import ConnectionProtocol
from archivist.models.exceptions import ErrCode, StorageError
from archivist.models.files import ArchiveFile
from archivist.models.folders import Folder
from archivist.sql.db_connection import get_dict_cursor
from archivist.sql.db_utils import safe_execute_dict
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger


@with_child_logger
def find_category_by_name(
    conn: ConnectionProtocol,
    name: str,
    *,
    logger: LoggerProtocol | None = None,
) -> Category | None:
    """
    Recherche exacte (sensible à la casse) d'une catégorie par nom.
    """
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            "SELECT id, name FROM categories WHERE name=%s LIMIT 1",
            (name,),
            logger=logger,
        ).fetchone()
    return Category.from_row(row) if row else None


@with_child_logger
def get_category_by_id(
    conn: ConnectionProtocol,
    category_id: int,
    *,
    logger: LoggerProtocol | None = None,
) -> Category | None:
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            "SELECT id, name FROM categories WHERE id=%s",
            (category_id,),
            logger=logger,
        ).fetchone()
    return Category.from_row(row) if row else None


@with_child_logger
def find_or_create_category(
    conn: ConnectionProtocol,
    name: str,
    *,
    logger: LoggerProtocol | None = None,
) -> Category:
    """
    Retourne la catégorie `name`, créée si absente.

    Idempotent pour un écrivain unique ; deux écrivains concurrents peuvent se
    heurter à la clé unique (StorageError) : l'appelant rejoue la transaction.
    """
    logger = ensure_logger(logger, __name__)
    existing = find_category_by_name(conn, name, logger=logger)
    if existing is not None:
        return existing

    with get_dict_cursor(conn) as cur:
        safe_execute_dict(cur, "INSERT INTO categories (name) VALUES (%s)", (name,), logger=logger)
        new_id = cur.lastrowid
    if not new_id:
        raise StorageError("Création de catégorie sans id", code=ErrCode.DB, ctx={"name": name})
    logger.info("[CATEG] Catégorie créée: %s (id=%s)", name, new_id)
    return Category(id=int(new_id), name=name)


@with_child_logger
def list_categories(
    conn: ConnectionProtocol,
    *,
    logger: LoggerProtocol | None = None,
) -> list[Category]:
    """
    Toutes les catégories, triées par nom sans tenir compte de la casse.
    """
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        rows = safe_execute_dict(
            cur,
            "SELECT id, name FROM categories ORDER BY LOWER(name), id",
            logger=logger,
        ).fetchall()
    return [Category.from_row(r) for r in rows]


@with_child_logger
def populate_categories(
    conn: ConnectionProtocol,
    files: Iterable[ArchiveFile] = (),
    folders: Iterable[Folder] = (),
    *,
    logger: LoggerProtocol | None = None,
) -> None:
    """
    Renseigne `.category` sur chaque fichier/dossier avec une seule requête de listing.
    """
    logger = ensure_logger(logger, __name__)
    lookup = {c.id: c for c in list_categories(conn, logger=logger)}
    for record in (*files, *folders):
        record.category = lookup.get(record.category_id)
        if record.category is None:
            logger.warning("[CATEG] Catégorie inconnue id=%s pour %s", record.category_id, record.public_path)
