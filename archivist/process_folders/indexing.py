"""
# process_folders/indexing.py

Enregistrement des dossiers et fichiers découverts par l'ingestion : repli
du chemin physique puis find-or-create de la catégorie, de la chaîne de
dossiers logiques, des dossiers physiques et du fichier.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from archivist.io.path_collapser import CollapsedPath, PathCollapser
from archivist.models.cursor_protocol import ConnectionProtocol
from archivist.models.exceptions import MalformedPathError
from archivist.models.files import ArchiveFile
from archivist.models.folders import Folder
from archivist.models.types import StrOrPath
from archivist.sql.categs.db_categ import find_or_create_category
from archivist.sql.files.db_files import find_or_create_file
from archivist.sql.folders.db_folders import find_or_create_folder, find_or_create_real_folder
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger


@dataclass(slots=True)
class IndexReport:
    registered: int = 0
    skipped: list[str] = field(default_factory=list)


@with_child_logger
def register_directory(
    conn: ConnectionProtocol,
    collapser: PathCollapser,
    physical_dir: StrOrPath,
    *,
    logger: LoggerProtocol | None = None,
) -> Folder:
    """
    Enregistre un dossier physique et tous ses ancêtres logiques.

    Chaque niveau du chemin public obtient son Folder (parent = niveau
    précédent) et le préfixe physique correspondant son RealFolder.
    """
    logger = ensure_logger(logger, __name__)
    return register_collapsed_directory(conn, collapser.collapse(physical_dir), logger=logger)


@with_child_logger
def register_collapsed_directory(
    conn: ConnectionProtocol,
    collapsed: CollapsedPath,
    *,
    logger: LoggerProtocol | None = None,
) -> Folder:
    """
    Comme register_directory, pour un chemin déjà replié (relatif à l'archive).
    """
    logger = ensure_logger(logger, __name__)
    category = find_or_create_category(conn, collapsed.category_name, logger=logger)

    parent: Folder | None = None
    for public_path, physical_path in collapsed.ancestors():
        folder = find_or_create_folder(conn, category, parent, public_path, logger=logger)
        find_or_create_real_folder(conn, folder, physical_path, logger=logger)
        parent = folder

    if parent is None:  # ancestors() produit toujours au moins le segment date
        raise MalformedPathError("Aucun dossier à enregistrer", ctx={"path": collapsed.physical_path})
    return parent


@with_child_logger
def register_file(
    conn: ConnectionProtocol,
    collapser: PathCollapser,
    physical_file: StrOrPath,
    *,
    logger: LoggerProtocol | None = None,
) -> ArchiveFile:
    """
    Enregistre un fichier de l'archive (et son dossier parent si besoin).

    Le chemin n'est replié qu'une fois : le dossier parent est dérivé du
    résultat, la racine de l'archive n'est donc jamais retirée deux fois.
    """
    logger = ensure_logger(logger, __name__)
    collapsed = collapser.collapse(physical_file)

    folder: Folder | None = None
    category = None
    parent = collapsed.parent()
    if parent is not None:
        folder = register_collapsed_directory(conn, parent, logger=logger)
        category = folder.category
    if category is None:
        category = find_or_create_category(conn, collapsed.category_name, logger=logger)

    return find_or_create_file(
        conn,
        category,
        folder,
        collapsed.public_path,
        collapsed.physical_path,
        logger=logger,
    )


@with_child_logger
def register_files(
    conn: ConnectionProtocol,
    collapser: PathCollapser,
    physical_files: Iterable[StrOrPath],
    *,
    logger: LoggerProtocol | None = None,
) -> IndexReport:
    """
    Enregistre une série de fichiers (typiquement les lignes d'un inventaire).

    Les chemins incompatibles avec la grammaire sont ignorés et listés dans le
    rapport ; une DataIntegrityError interrompt tout (la transaction doit être
    annulée).
    """
    logger = ensure_logger(logger, __name__)
    report = IndexReport()
    for path in physical_files:
        try:
            register_file(conn, collapser, path, logger=logger)
        except MalformedPathError as exc:
            logger.warning("[INDEX] Chemin ignoré %s : %s | ctx=%r", path, exc, exc.ctx)
            report.skipped.append(str(path))
            continue
        report.registered += 1
    logger.info("[INDEX] %d fichier(s) enregistrés, %d ignoré(s)", report.registered, len(report.skipped))
    return report
