# sql/db_connection.py

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import cast

import pymysql
from pymysql.connections import Connection
from pymysql.cursors import DictCursor

from archivist.models.cursor_protocol import ConnectionProtocol, DictCursorProtocol
from archivist.models.db_config import build_db_config
from archivist.models.exceptions import ArchivistError, ErrCode, StorageError
from archivist.utils.config import Settings, load_settings
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger

ConnectFactory = Callable[[], ConnectionProtocol]


def get_dict_cursor(conn: ConnectionProtocol) -> DictCursorProtocol:
    return cast(DictCursorProtocol, conn.cursor(DictCursor))


@with_child_logger
def get_db_connection(
    settings: Settings | None = None,
    *,
    logger: LoggerProtocol | None = None,
) -> Connection:
    """
    Ouvre une connexion MySQL à partir des Settings (.env chargé par utils.config).
    """
    logger = ensure_logger(logger, __name__)
    settings = settings or load_settings()
    try:
        conn = pymysql.connect(**build_db_config(settings))
    except pymysql.MySQLError as exc:
        raise StorageError(
            "Erreur de connexion DB", code=ErrCode.DB, ctx={"host": settings.db_host, "db": settings.db_name}
        ) from exc
    logger.debug("[DB] Connexion ouverte %s@%s/%s", settings.db_user, settings.db_host, settings.db_name)
    return conn


def connection_factory(settings: Settings) -> ConnectFactory:
    """
    Fabrique de connexions liée à des Settings, à passer à db_conn().
    """

    def _connect() -> ConnectionProtocol:
        return cast(ConnectionProtocol, get_db_connection(settings))

    return _connect


@contextmanager
@with_child_logger
def db_conn(
    connect: ConnectFactory | None = None,
    *,
    logger: LoggerProtocol | None = None,
) -> Iterator[ConnectionProtocol]:
    """
    Ouvre une connexion et une transaction : commit si le bloc réussit,
    rollback complet sur n'importe quelle exception, close dans tous les cas.
    """
    logger = ensure_logger(logger, __name__)
    conn = connect() if connect is not None else cast(ConnectionProtocol, get_db_connection(logger=logger))
    try:
        conn.begin()
        yield conn
        conn.commit()
    except Exception as exc:
        try:
            conn.rollback()
        except Exception:  # pylint: disable=broad-except
            logger.warning("Rollback failed", exc_info=True)
        if isinstance(exc, pymysql.MySQLError):
            raise StorageError("Transaction DB annulée", code=ErrCode.DB) from exc
        if isinstance(exc, ArchivistError):
            logger.debug("[DB] Rollback après %s", exc)
        raise
    finally:
        try:
            conn.close()
        except pymysql.err.Error as exc:
            if "Already closed" not in str(exc):
                logger.warning("Close failed: %s", exc)
