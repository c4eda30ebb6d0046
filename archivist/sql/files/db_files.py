"""
# sql/files/db_files.py
"""

from __future__ import annotations

from collections.abc import Iterable

from archivist.models.category import Category
from archivist.models.cursor_protocol import ConnectionProtocol
from archivist.models.exceptions import DataIntegrityError, ErrCode, StorageError
from archivist.models.files import ArchiveFile
from archivist.models.folders import Folder
from archivist.models.search import SearchResult
from archivist.sql.categs.db_categ import populate_categories
from archivist.sql.db_connection import get_dict_cursor
from archivist.sql.db_utils import (
    LIKE_ESCAPE,
    chunked,
    like_contains,
    placeholders,
    require_id,
    safe_execute_dict,
)
from archivist.sql.folders.db_folders import parent_clause, subtree_clause
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger

# Plafond de paramètres d'une clause IN
MAX_BATCH_SIZE = 1000

_FILE_COLUMNS = "id, category_id, folder_id, public_path, full_path, depth"


def file_sort_key(f: ArchiveFile) -> tuple[int, str, int]:
    """
    Ordre d'affichage : profondeur, puis chemin public sans casse (id pour départager).
    """
    return (f.depth or 0, f.public_path.lower(), f.id or 0)


@with_child_logger
def find_file_by_id(
    conn: ConnectionProtocol,
    file_id: int,
    *,
    logger: LoggerProtocol | None = None,
) -> ArchiveFile | None:
    """
    Retourne le fichier d'id file_id, ou None s'il n'existe pas.
    """
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            f"SELECT {_FILE_COLUMNS} FROM files WHERE id=%s",
            (file_id,),
            logger=logger,
        ).fetchone()
    return ArchiveFile.from_row(row) if row else None


@with_child_logger
def find_file_by_path(
    conn: ConnectionProtocol,
    category: Category,
    public_path: str,
    *,
    logger: LoggerProtocol | None = None,
) -> ArchiveFile | None:
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            f"SELECT {_FILE_COLUMNS} FROM files WHERE category_id=%s AND public_path=%s LIMIT 1",
            (require_id(category), public_path),
            logger=logger,
        ).fetchone()
    return ArchiveFile.from_row(row) if row else None


@with_child_logger
def find_or_create_file(
    conn: ConnectionProtocol,
    category: Category,
    folder: Folder | None,
    public_path: str,
    full_path: str,
    *,
    logger: LoggerProtocol | None = None,
) -> ArchiveFile:
    """
    Enregistre un fichier indexé (clé : catégorie + chemin public).

    Même règle que les dossiers : un fichier déjà rattaché à un autre dossier
    lève DataIntegrityError. Deux chemins physiques distincts repliés sur le
    même chemin public gardent le premier full_path vu (avertissement loggé).
    """
    logger = ensure_logger(logger, __name__)
    folder_id = require_id(folder) if folder is not None else None

    existing = find_file_by_path(conn, category, public_path, logger=logger)
    if existing is not None:
        if existing.folder_id != folder_id:
            raise DataIntegrityError(
                "Fichier existant dans un autre dossier",
                code=ErrCode.INTEGRITY,
                ctx={
                    "category": category.name,
                    "public_path": public_path,
                    "stored_folder_id": existing.folder_id,
                    "requested_folder_id": folder_id,
                },
            )
        if existing.full_path != full_path:
            logger.warning(
                "[FILE] %s:%s déjà indexé depuis %s, ignoré: %s",
                category.name,
                public_path,
                existing.full_path,
                full_path,
            )
        existing.category = category
        existing.folder = folder
        return existing

    new_file = ArchiveFile(
        category_id=require_id(category),
        folder_id=folder_id,
        public_path=public_path,
        full_path=full_path,
        category=category,
        folder=folder,
    )
    with get_dict_cursor(conn) as cur:
        safe_execute_dict(
            cur,
            "INSERT INTO files (category_id, folder_id, public_path, full_path, depth) VALUES (%s, %s, %s, %s, %s)",
            new_file.to_insert_params(),
            logger=logger,
        )
        new_id = cur.lastrowid
    if not new_id:
        raise StorageError("Création de fichier sans id", code=ErrCode.DB, ctx={"public_path": public_path})
    new_file.id = int(new_id)
    return new_file


@with_child_logger
def get_files(
    conn: ConnectionProtocol,
    category: Category,
    folder: Folder | None = None,
    limit: int | None = None,
    *,
    logger: LoggerProtocol | None = None,
) -> SearchResult[ArchiveFile]:
    """
    Fichiers directement dans folder (ou fichiers de premier niveau si None).

    total compte tous les fichiers du dossier, indépendamment de limit.
    """
    logger = ensure_logger(logger, __name__)
    parent_where, parent_params = parent_clause(folder)
    where = f"category_id=%s AND {parent_where}"
    params: tuple[object, ...] = (require_id(category), *parent_params)

    with get_dict_cursor(conn) as cur:
        count_row = safe_execute_dict(
            cur, f"SELECT COUNT(*) AS total_count FROM files WHERE {where}", params, logger=logger
        ).fetchone()
        total = int(count_row["total_count"]) if count_row else 0

        query = f"SELECT {_FILE_COLUMNS} FROM files WHERE {where} ORDER BY LOWER(public_path), id"
        if limit is not None:
            query += " LIMIT %s"
            params = (*params, int(limit))
        rows = safe_execute_dict(cur, query, params, logger=logger).fetchall()

    files = [ArchiveFile.from_row(r) for r in rows]
    for f in files:
        f.category = category
        f.folder = folder
    return SearchResult(items=files, total=total)


@with_child_logger
def search_files(
    conn: ConnectionProtocol,
    category: Category,
    root: Folder | None,
    term: str,
    limit: int | None = None,
    *,
    logger: LoggerProtocol | None = None,
) -> SearchResult[ArchiveFile]:
    """
    Fichiers *descendants* de root (ou de toute la catégorie) dont le chemin public contient term.

    Le dossier parent n'est pas chargé sur les résultats : toutes les
    navigations passent par le chemin, inutile de le relire en base.
    """
    logger = ensure_logger(logger, __name__)
    subtree, subtree_params = subtree_clause(root)
    where = f"category_id=%s{subtree} AND public_path LIKE %s ESCAPE '{LIKE_ESCAPE}'"
    params: tuple[object, ...] = (require_id(category), *subtree_params, like_contains(term))

    with get_dict_cursor(conn) as cur:
        count_row = safe_execute_dict(
            cur, f"SELECT COUNT(*) AS total_count FROM files WHERE {where}", params, logger=logger
        ).fetchone()
        total = int(count_row["total_count"]) if count_row else 0

        query = f"SELECT {_FILE_COLUMNS} FROM files WHERE {where} ORDER BY depth, LOWER(public_path), id"
        if limit is not None:
            query += " LIMIT %s"
            params = (*params, int(limit))
        rows = safe_execute_dict(cur, query, params, logger=logger).fetchall()

    files = [ArchiveFile.from_row(r) for r in rows]
    for f in files:
        f.category = category
    logger.debug("[SEARCH] fichiers %r sous %s : %d/%d", term, root.public_path if root else "/", len(files), total)
    return SearchResult(items=files, total=total)


@with_child_logger
def get_files_by_ids(
    conn: ConnectionProtocol,
    ids: Iterable[int],
    *,
    batch_size: int = MAX_BATCH_SIZE,
    logger: LoggerProtocol | None = None,
) -> list[ArchiveFile]:
    """
    Charge les fichiers des ids demandés, par tranches de batch_size.

    Les ids absents sont ignorés, les doublons fusionnés. L'ordre des tranches
    ne préserve pas l'ordre demandé : le résultat est retrié par
    (profondeur, chemin public sans casse), jamais dans l'ordre des ids.
    """
    logger = ensure_logger(logger, __name__)
    unique_ids = list(dict.fromkeys(int(i) for i in ids))
    files: list[ArchiveFile] = []
    if not unique_ids:
        return files

    batches = chunked(unique_ids, min(batch_size, MAX_BATCH_SIZE))
    with get_dict_cursor(conn) as cur:
        for batch in batches:
            rows = safe_execute_dict(
                cur,
                f"SELECT {_FILE_COLUMNS} FROM files WHERE id IN ({placeholders(len(batch))})",
                tuple(batch),
                logger=logger,
            ).fetchall()
            files.extend(ArchiveFile.from_row(r) for r in rows)

    files.sort(key=file_sort_key)
    populate_categories(conn, files, logger=logger)
    logger.debug("[FILES] %d/%d fichiers chargés en %d requête(s)", len(files), len(unique_ids), len(batches))
    return files
