"""
Fixtures communes : base SQLite en mémoire exposée avec la surface pymysql
utilisée par archivist (placeholders %s, lignes dict, curseur "with").
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
import os
import sqlite3
import tempfile
from typing import Any

import pytest

# avant tout import d'archivist : les logs vont dans un dossier jetable
os.environ.setdefault("LOG_FILE_PATH", tempfile.mkdtemp(prefix="archivist-logs-"))

from archivist.io.path_collapser import PathCollapser  # noqa: E402
from archivist.models.category import Category  # noqa: E402
from archivist.sql.categs.db_categ import find_or_create_category  # noqa: E402

sqlite3.register_adapter(datetime, lambda d: d.isoformat(" "))
sqlite3.register_converter("DATETIME", lambda b: datetime.fromisoformat(b.decode()))

SCHEMA = """
CREATE TABLE categories (
  id INTEGER PRIMARY KEY,
  name TEXT NOT NULL UNIQUE
);
CREATE TABLE folders (
  id INTEGER PRIMARY KEY,
  category_id INTEGER NOT NULL REFERENCES categories (id),
  folder_id INTEGER NULL REFERENCES folders (id),
  public_path TEXT NOT NULL,
  name TEXT NOT NULL,
  depth INTEGER NOT NULL,
  UNIQUE (category_id, public_path)
);
CREATE TABLE real_folders (
  id INTEGER PRIMARY KEY,
  folder_id INTEGER NOT NULL REFERENCES folders (id),
  full_path TEXT NOT NULL UNIQUE
);
CREATE TABLE files (
  id INTEGER PRIMARY KEY,
  category_id INTEGER NOT NULL REFERENCES categories (id),
  folder_id INTEGER NULL REFERENCES folders (id),
  public_path TEXT NOT NULL,
  full_path TEXT NOT NULL,
  depth INTEGER NOT NULL,
  UNIQUE (category_id, public_path)
);
CREATE TABLE inventories (
  id INTEGER PRIMARY KEY,
  path TEXT NOT NULL UNIQUE,
  indexed_at DATETIME NOT NULL
);
CREATE TABLE archive_jobs (
  id INTEGER PRIMARY KEY,
  created_at DATETIME NOT NULL,
  next_attempt_at DATETIME NOT NULL,
  files TEXT NOT NULL,
  notification_emails TEXT NOT NULL,
  processed BOOLEAN NOT NULL DEFAULT 0
);
"""


class SqliteDictCursor:
    def __init__(self, owner: SqliteConnection) -> None:
        self._owner = owner
        self._cur = owner.raw.cursor()

    @property
    def rowcount(self) -> int:
        return self._cur.rowcount

    @property
    def lastrowid(self) -> int | None:
        return self._cur.lastrowid

    def __enter__(self) -> SqliteDictCursor:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def execute(self, query: str, args: Any = None) -> int:
        self._owner.queries.append(query)
        self._cur.execute(query.replace("%s", "?"), tuple(args) if args is not None else ())
        return self._cur.rowcount

    def nextset(self) -> None:
        return None

    def fetchone(self) -> dict[str, Any] | None:
        row = self._cur.fetchone()
        return dict(row) if row is not None else None

    def fetchall(self) -> list[dict[str, Any]]:
        return [dict(r) for r in self._cur.fetchall()]

    def close(self) -> None:
        self._cur.close()


class SqliteConnection:
    """
    Connexion partagée par tout un test : close() ne ferme rien, la fixture s'en charge.
    """

    def __init__(self) -> None:
        self.raw = sqlite3.connect(":memory:", detect_types=sqlite3.PARSE_DECLTYPES)
        self.raw.row_factory = sqlite3.Row
        self.raw.executescript(SCHEMA)
        self.queries: list[str] = []
        self.closed = 0

    def cursor(self, cursor: Any = None) -> SqliteDictCursor:
        return SqliteDictCursor(self)

    def begin(self) -> None:
        return None

    def commit(self) -> None:
        self.raw.commit()

    def rollback(self) -> None:
        self.raw.rollback()

    def close(self) -> None:
        self.closed += 1

    def count(self, table: str) -> int:
        return int(self.raw.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0])


@pytest.fixture
def conn() -> Iterator[SqliteConnection]:
    connection = SqliteConnection()
    yield connection
    connection.raw.close()


@pytest.fixture
def connect(conn: SqliteConnection):
    return lambda: conn


@pytest.fixture
def collapser() -> PathCollapser:
    return PathCollapser("ignore/project/date", archive_root="/archive")


@pytest.fixture
def t0() -> datetime:
    return datetime(2026, 3, 2, 9, 30, 0)


@pytest.fixture
def project(conn: SqliteConnection) -> Category:
    return find_or_create_category(conn, "ProjectX")
