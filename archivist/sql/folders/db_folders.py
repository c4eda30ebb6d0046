"""
# sql/folders/db_folders.py
"""

from __future__ import annotations

from archivist.models.category import Category
from archivist.models.cursor_protocol import ConnectionProtocol
from archivist.models.exceptions import DataIntegrityError, ErrCode, StorageError
from archivist.models.folders import Folder, RealFolder
from archivist.models.search import SearchResult
from archivist.sql.db_connection import get_dict_cursor
from archivist.sql.db_utils import LIKE_ESCAPE, like_contains, like_prefix, require_id, safe_execute_dict
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger

_FOLDER_COLUMNS = "id, category_id, folder_id, public_path, name, depth"


def parent_clause(parent: Folder | None) -> tuple[str, tuple[int, ...]]:
    """
    Filtre SQL sur le parent direct ; None = premier niveau (NULL, jamais 0).
    """
    if parent is None:
        return "folder_id IS NULL", ()
    return "folder_id=%s", (require_id(parent),)


def subtree_clause(root: Folder | None) -> tuple[str, tuple[str, ...]]:
    """
    Filtre SQL « descendants de root » (préfixe de chemin public), ou vide si pas de root.
    """
    if root is None:
        return "", ()
    return f" AND public_path LIKE %s ESCAPE '{LIKE_ESCAPE}'", (like_prefix(root.public_path + "/"),)


@with_child_logger
def find_folder_by_path(
    conn: ConnectionProtocol,
    category: Category,
    public_path: str,
    *,
    logger: LoggerProtocol | None = None,
) -> Folder | None:
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE category_id=%s AND public_path=%s LIMIT 1",
            (require_id(category), public_path),
            logger=logger,
        ).fetchone()
    return Folder.from_row(row) if row else None


@with_child_logger
def find_folder_by_id(
    conn: ConnectionProtocol,
    folder_id: int,
    *,
    logger: LoggerProtocol | None = None,
) -> Folder | None:
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE id=%s",
            (folder_id,),
            logger=logger,
        ).fetchone()
    return Folder.from_row(row) if row else None


@with_child_logger
def find_or_create_folder(
    conn: ConnectionProtocol,
    category: Category,
    parent: Folder | None,
    public_path: str,
    *,
    logger: LoggerProtocol | None = None,
) -> Folder:
    """
    Retourne le dossier (category, public_path), créé si absent.

    Un dossier existant n'est jamais re-parenté : s'il est trouvé avec un
    parent différent de celui fourni, DataIntegrityError est levée et la ligne
    existante reste intacte.
    """
    logger = ensure_logger(logger, __name__)
    parent_id = require_id(parent) if parent is not None else None

    folder = find_folder_by_path(conn, category, public_path, logger=logger)
    if folder is not None:
        if folder.parent_id != parent_id:
            raise DataIntegrityError(
                "Dossier existant avec un parent différent",
                code=ErrCode.INTEGRITY,
                ctx={
                    "category": category.name,
                    "public_path": public_path,
                    "stored_parent_id": folder.parent_id,
                    "requested_parent_id": parent_id,
                },
            )
        folder.category = category
        folder.parent = parent
        return folder

    folder = Folder(
        category_id=require_id(category),
        parent_id=parent_id,
        public_path=public_path,
        category=category,
        parent=parent,
    )
    with get_dict_cursor(conn) as cur:
        safe_execute_dict(
            cur,
            "INSERT INTO folders (category_id, folder_id, public_path, name, depth) VALUES (%s, %s, %s, %s, %s)",
            folder.to_insert_params(),
            logger=logger,
        )
        new_id = cur.lastrowid
    if not new_id:
        raise StorageError("Création de dossier sans id", code=ErrCode.DB, ctx={"public_path": public_path})
    folder.id = int(new_id)
    logger.debug("[FOLDER] Créé %s:%s (id=%s, parent=%s)", category.name, public_path, folder.id, parent_id)
    return folder


@with_child_logger
def find_real_folder_by_path(
    conn: ConnectionProtocol,
    full_path: str,
    *,
    logger: LoggerProtocol | None = None,
) -> RealFolder | None:
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            "SELECT id, folder_id, full_path FROM real_folders WHERE full_path=%s LIMIT 1",
            (full_path,),
            logger=logger,
        ).fetchone()
    return RealFolder.from_row(row) if row else None


@with_child_logger
def find_or_create_real_folder(
    conn: ConnectionProtocol,
    folder: Folder,
    full_path: str,
    *,
    logger: LoggerProtocol | None = None,
) -> RealFolder:
    """
    Rattache le dossier physique full_path au dossier logique folder.

    Un chemin physique déjà rattaché à un autre dossier logique lève
    DataIntegrityError.
    """
    logger = ensure_logger(logger, __name__)
    folder_id = require_id(folder)

    real = find_real_folder_by_path(conn, full_path, logger=logger)
    if real is not None:
        if real.folder_id != folder_id:
            raise DataIntegrityError(
                "Dossier physique déjà rattaché à un autre dossier logique",
                code=ErrCode.INTEGRITY,
                ctx={"full_path": full_path, "stored_folder_id": real.folder_id, "requested_folder_id": folder_id},
            )
        real.folder = folder
        return real

    with get_dict_cursor(conn) as cur:
        safe_execute_dict(
            cur,
            "INSERT INTO real_folders (folder_id, full_path) VALUES (%s, %s)",
            (folder_id, full_path),
            logger=logger,
        )
        new_id = cur.lastrowid
    if not new_id:
        raise StorageError("Création de dossier physique sans id", code=ErrCode.DB, ctx={"full_path": full_path})
    logger.debug("[FOLDER] Physique %s -> dossier id=%s", full_path, folder_id)
    return RealFolder(id=int(new_id), folder_id=folder_id, full_path=full_path, folder=folder)


@with_child_logger
def get_real_folders(
    conn: ConnectionProtocol,
    folder: Folder,
    *,
    logger: LoggerProtocol | None = None,
) -> list[RealFolder]:
    """
    Dossiers physiques repliés sur folder, triés par chemin.
    """
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        rows = safe_execute_dict(
            cur,
            "SELECT id, folder_id, full_path FROM real_folders WHERE folder_id=%s ORDER BY full_path",
            (require_id(folder),),
            logger=logger,
        ).fetchall()
    reals = [RealFolder.from_row(r) for r in rows]
    for real in reals:
        real.folder = folder
    return reals


@with_child_logger
def get_folders(
    conn: ConnectionProtocol,
    category: Category,
    parent: Folder | None = None,
    *,
    logger: LoggerProtocol | None = None,
) -> list[Folder]:
    """
    Sous-dossiers directs de parent (ou dossiers de premier niveau si None).
    """
    logger = ensure_logger(logger, __name__)
    where, params = parent_clause(parent)
    with get_dict_cursor(conn) as cur:
        rows = safe_execute_dict(
            cur,
            f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE category_id=%s AND {where} ORDER BY LOWER(name), id",
            (require_id(category), *params),
            logger=logger,
        ).fetchall()
    folders = [Folder.from_row(r) for r in rows]
    for f in folders:
        f.category = category
        f.parent = parent
    return folders


@with_child_logger
def search_folders(
    conn: ConnectionProtocol,
    category: Category,
    root: Folder | None,
    term: str,
    limit: int | None = None,
    *,
    logger: LoggerProtocol | None = None,
) -> SearchResult[Folder]:
    """
    Dossiers *descendants* de root (ou de toute la catégorie) dont le nom contient term.

    Le parent n'est pas résolu sur les résultats : il se déduit du chemin public.
    """
    logger = ensure_logger(logger, __name__)
    subtree, subtree_params = subtree_clause(root)
    where = f"category_id=%s{subtree} AND name LIKE %s ESCAPE '{LIKE_ESCAPE}'"
    params = (require_id(category), *subtree_params, like_contains(term))

    with get_dict_cursor(conn) as cur:
        count_row = safe_execute_dict(
            cur, f"SELECT COUNT(*) AS total_count FROM folders WHERE {where}", params, logger=logger
        ).fetchone()
        total = int(count_row["total_count"]) if count_row else 0

        query = f"SELECT {_FOLDER_COLUMNS} FROM folders WHERE {where} ORDER BY depth, LOWER(public_path), id"
        if limit is not None:
            query += " LIMIT %s"
            params = (*params, int(limit))
        rows = safe_execute_dict(cur, query, params, logger=logger).fetchall()

    folders = [Folder.from_row(r) for r in rows]
    for f in folders:
        f.category = category
    logger.debug("[SEARCH] dossiers %r sous %s : %d/%d", term, root.public_path if root else "/", len(folders), total)
    return SearchResult(items=folders, total=total)

