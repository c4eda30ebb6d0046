"""
# sql/jobs/db_archive_jobs.py

File durable des demandes de bundle.

Cycle de vie d'un job : en attente (next_attempt_at futur) -> prêt
(next_attempt_at <= now, processed = 0) -> réclamé le temps du callback ->
terminé (processed = 1, ligne conservée) ou renvoyé en attente une heure plus
tard si le callback signale un échec.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta
from email.utils import formataddr, parseaddr
from pathlib import Path, PurePosixPath

from archivist.models.archive_job import ArchiveJob, JobOutcome
from archivist.models.cursor_protocol import ConnectionProtocol
from archivist.models.exceptions import ErrCode, StorageError, ValidationError
from archivist.models.files import ArchiveFile
from archivist.sql.db_connection import get_dict_cursor
from archivist.sql.db_utils import safe_execute_dict
from archivist.utils.clock import utc_now
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger

RETRY_BACKOFF = timedelta(hours=1)

_JOB_COLUMNS = "id, created_at, next_attempt_at, files, notification_emails, processed"

JobCallback = Callable[[ArchiveJob], bool]


def normalize_address(raw: str) -> str:
    """
    Valide une adresse de notification et la remet en forme ("Nom <a@b>" ou "a@b").

    Lève ValidationError si l'adresse est vide ou sans partie locale / domaine.
    """
    name, addr = parseaddr(raw or "")
    local, _, domain = addr.partition("@")
    if not local or not domain or "@" in domain or " " in addr:
        raise ValidationError("Adresse de notification invalide", code=ErrCode.VALIDATION, ctx={"address": raw})
    return formataddr((name, addr)) if name else addr


def file_paths(files: Sequence[ArchiveFile | str], archive_root: str | Path | None) -> list[str]:
    """
    Chemins absolus POSIX des fichiers du job.

    Lève ValidationError pour tout chemin relatif (ArchiveFile sans archive_root
    ou chaîne relative) : le worker ne saurait pas le résoudre.
    """
    paths: list[str] = []
    for f in files:
        path = f.absolute_path(archive_root) if isinstance(f, ArchiveFile) else Path(f).as_posix()
        if not PurePosixPath(path).is_absolute():
            raise ValidationError(
                "Chemin de fichier non absolu", code=ErrCode.VALIDATION, ctx={"path": path, "archive_root": archive_root}
            )
        paths.append(path)
    return paths


@with_child_logger
def enqueue_archive_job(
    conn: ConnectionProtocol,
    emails: Sequence[str],
    files: Sequence[ArchiveFile | str],
    *,
    archive_root: str | Path | None = None,
    now: datetime | None = None,
    logger: LoggerProtocol | None = None,
) -> ArchiveJob:
    """
    Crée un job de bundle immédiatement éligible.

    Args:
        emails: destinataires, dans l'ordre.
        files: fichiers (ArchiveFile, chemin absolu = archive_root/full_path) ou chemins.
        archive_root: racine de l'archive pour les ArchiveFile.
        now: horloge injectable (created_at = next_attempt_at = now).

    Raises:
        ValidationError: liste vide ou adresse invalide (aucune ligne écrite).
    """
    logger = ensure_logger(logger, __name__)
    if not files:
        raise ValidationError("Aucun fichier à archiver", code=ErrCode.VALIDATION)
    if not emails:
        raise ValidationError("Aucune adresse de notification pour le job", code=ErrCode.VALIDATION)

    addresses = [normalize_address(e) for e in emails]
    stamp = now or utc_now()
    job = ArchiveJob(
        created_at=stamp,
        next_attempt_at=stamp,
        files=tuple(file_paths(files, archive_root)),
        notification_emails=tuple(addresses),
    )
    with get_dict_cursor(conn) as cur:
        safe_execute_dict(
            cur,
            "INSERT INTO archive_jobs (created_at, next_attempt_at, files, notification_emails, processed) "
            "VALUES (%s, %s, %s, %s, %s)",
            job.to_insert_params(),
            logger=logger,
        )
        new_id = cur.lastrowid
    if not new_id:
        raise StorageError("Création de job sans id", code=ErrCode.DB)
    job.id = int(new_id)
    logger.info("[JOB] Job %s en file : %d fichier(s) pour %s", job.id, len(job.files), ", ".join(addresses))
    return job


@with_child_logger
def get_archive_job(
    conn: ConnectionProtocol,
    job_id: int,
    *,
    logger: LoggerProtocol | None = None,
) -> ArchiveJob | None:
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            f"SELECT {_JOB_COLUMNS} FROM archive_jobs WHERE id=%s",
            (job_id,),
            logger=logger,
        ).fetchone()
    return ArchiveJob.from_row(row) if row else None


@with_child_logger
def list_pending_archive_jobs(
    conn: ConnectionProtocol,
    *,
    logger: LoggerProtocol | None = None,
) -> list[ArchiveJob]:
    """
    Jobs non terminés (prêts ou en attente de nouvel essai), du plus ancien au plus récent.
    """
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        rows = safe_execute_dict(
            cur,
            f"SELECT {_JOB_COLUMNS} FROM archive_jobs WHERE processed=0 ORDER BY created_at, id",
            logger=logger,
        ).fetchall()
    return [ArchiveJob.from_row(r) for r in rows]


@with_child_logger
def next_ready_archive_job(
    conn: ConnectionProtocol,
    *,
    now: datetime | None = None,
    logger: LoggerProtocol | None = None,
) -> ArchiveJob | None:
    """
    Le job prêt le plus ancien (created_at), ou None.
    """
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur,
            f"SELECT {_JOB_COLUMNS} FROM archive_jobs "
            "WHERE processed=0 AND next_attempt_at <= %s ORDER BY created_at, id LIMIT 1",
            (now or utc_now(),),
            logger=logger,
        ).fetchone()
    return ArchiveJob.from_row(row) if row else None


@with_child_logger
def process_archive_job(
    conn: ConnectionProtocol,
    callback: JobCallback,
    *,
    now: datetime | None = None,
    backoff: timedelta = RETRY_BACKOFF,
    logger: LoggerProtocol | None = None,
) -> JobOutcome | None:
    """
    Réclame le job prêt le plus ancien et exécute callback(job) de façon synchrone.

    - aucun job prêt : callback non appelé, retourne None ;
    - callback -> True : processed = 1 (le job reste en base comme trace) ;
    - callback -> False : next_attempt_at repoussé de backoff, le job reste éligible plus tard.

    Un seul job par appel. Une exception levée par le callback remonte telle
    quelle : la transaction englobante est annulée et le job reste inchangé.
    """
    logger = ensure_logger(logger, __name__)
    stamp = now or utc_now()
    job = next_ready_archive_job(conn, now=stamp, logger=logger)
    if job is None:
        logger.debug("[JOB] Aucun job prêt à %s", stamp)
        return None

    logger.info("[JOB] Traitement du job %s (%d fichier(s))", job.id, len(job.files))
    succeeded = bool(callback(job))

    with get_dict_cursor(conn) as cur:
        if succeeded:
            safe_execute_dict(cur, "UPDATE archive_jobs SET processed=1 WHERE id=%s", (job.id,), logger=logger)
            job.processed = True
        else:
            retry_at = max(job.next_attempt_at, stamp) + backoff
            safe_execute_dict(
                cur,
                "UPDATE archive_jobs SET next_attempt_at=%s WHERE id=%s",
                (retry_at, job.id),
                logger=logger,
            )
            job.next_attempt_at = retry_at
        if cur.rowcount == 0:
            raise StorageError("Job disparu pendant le traitement", code=ErrCode.DB, ctx={"job_id": job.id})

    if succeeded:
        logger.info("[JOB] ✅ Job %s terminé", job.id)
    else:
        logger.warning("[JOB] Job %s en échec, nouvel essai à %s", job.id, job.next_attempt_at)
    return JobOutcome(job=job, succeeded=succeeded)
