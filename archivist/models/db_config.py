from __future__ import annotations

from typing import TypedDict

from pymysql.constants import CLIENT
from pymysql.cursors import Cursor, DictCursor

from archivist.utils.config import Settings


class DBConfig(TypedDict, total=False):
    host: str
    user: str
    password: str
    database: str
    port: int
    charset: str
    cursorclass: type[Cursor]
    autocommit: bool
    client_flag: int


def build_db_config(settings: Settings) -> DBConfig:
    """
    Paramètres pymysql.connect() depuis les Settings.
    """
    return {
        "host": settings.db_host,
        "user": settings.db_user,
        "password": settings.db_password,
        "database": settings.db_name,
        "port": settings.db_port,
        "charset": "utf8mb4",
        "cursorclass": DictCursor,
        "autocommit": False,
        # rowcount = lignes trouvées, pas seulement modifiées
        "client_flag": CLIENT.FOUND_ROWS,
    }
