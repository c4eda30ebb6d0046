"""
# watcher/poller.py

Boucle du worker : un job par passage, sommeil quand la file est vide.
"""

from __future__ import annotations

from collections.abc import Callable
import importlib
import time

from archivist.models.archive_job import JobOutcome
from archivist.models.exceptions import ConfigurationError, ErrCode
from archivist.models.types import Clock
from archivist.sql.db_connection import ConnectFactory, db_conn
from archivist.sql.jobs.db_archive_jobs import JobCallback, process_archive_job
from archivist.utils.clock import utc_now
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger


def load_handler(spec: str) -> JobCallback:
    """
    Résout "paquet.module:attribut" vers le callable qui construit et envoie le bundle.
    """
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(
            "ARCHIVE_HANDLER doit être de la forme 'module:attribut'", code=ErrCode.CONFIG, ctx={"handler": spec}
        )
    try:
        module = importlib.import_module(module_name)
        handler = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError("Handler introuvable", code=ErrCode.CONFIG, ctx={"handler": spec}) from exc
    if not callable(handler):
        raise ConfigurationError("Handler non appelable", code=ErrCode.CONFIG, ctx={"handler": spec})
    return handler


@with_child_logger
def poll_once(
    connect: ConnectFactory | None,
    handler: JobCallback,
    *,
    clock: Clock = utc_now,
    logger: LoggerProtocol | None = None,
) -> JobOutcome | None:
    """
    Une transaction, au plus un job traité.
    """
    logger = ensure_logger(logger, __name__)
    with db_conn(connect, logger=logger) as conn:
        return process_archive_job(conn, handler, now=clock(), logger=logger)


@with_child_logger
def run_poller(
    connect: ConnectFactory | None,
    handler: JobCallback,
    *,
    interval: float = 300.0,
    once: bool = False,
    clock: Clock = utc_now,
    sleep: Callable[[float], None] = time.sleep,
    max_polls: int | None = None,
    logger: LoggerProtocol | None = None,
) -> int:
    """
    Enchaîne les poll_once ; dort interval secondes quand aucun job n'est prêt.

    Un job en échec ne bloque pas les suivants : sa relance est décalée d'une
    heure et la file continue d'être vidée. Avec once=True, s'arrête dès que
    plus aucun job n'est prêt (mode cron).
    Retourne le nombre de jobs traités avec succès.
    """
    logger = ensure_logger(logger, __name__)
    succeeded = 0
    polls = 0
    while max_polls is None or polls < max_polls:
        polls += 1
        outcome = poll_once(connect, handler, clock=clock, logger=logger)
        if outcome is not None:
            # un échec est replanifié : on passe au job prêt suivant
            succeeded += int(outcome.succeeded)
            continue
        if once:
            break
        sleep(interval)
    logger.info("[WORKER] Arrêt après %d passage(s), %d job(s) terminés", polls, succeeded)
    return succeeded
