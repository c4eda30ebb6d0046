"""
# sql/inventories/db_inventories.py
"""

from __future__ import annotations

from datetime import datetime

from archivist.models.cursor_protocol import ConnectionProtocol
from archivist.models.inventory import Inventory
from archivist.sql.db_connection import get_dict_cursor
from archivist.sql.db_utils import safe_execute_dict
from archivist.utils.clock import utc_now
from archivist.utils.logger import LoggerProtocol, ensure_logger, with_child_logger


@with_child_logger
def list_inventories(
    conn: ConnectionProtocol,
    *,
    logger: LoggerProtocol | None = None,
) -> list[Inventory]:
    """
    Inventaires déjà indexés, triés par chemin.
    """
    logger = ensure_logger(logger, __name__)
    with get_dict_cursor(conn) as cur:
        rows = safe_execute_dict(
            cur, "SELECT id, path, indexed_at FROM inventories ORDER BY path", logger=logger
        ).fetchall()
    return [Inventory.from_row(r) for r in rows]


@with_child_logger
def write_inventory(
    conn: ConnectionProtocol,
    path: str,
    *,
    now: datetime | None = None,
    logger: LoggerProtocol | None = None,
) -> Inventory:
    """
    Marque l'inventaire path comme indexé (insertion ou mise à jour de indexed_at).
    """
    logger = ensure_logger(logger, __name__)
    stamp = now or utc_now()
    with get_dict_cursor(conn) as cur:
        row = safe_execute_dict(
            cur, "SELECT id FROM inventories WHERE path=%s", (path,), logger=logger
        ).fetchone()
        if row:
            inv_id = int(row["id"])
            safe_execute_dict(
                cur, "UPDATE inventories SET indexed_at=%s WHERE id=%s", (stamp, inv_id), logger=logger
            )
        else:
            safe_execute_dict(
                cur, "INSERT INTO inventories (path, indexed_at) VALUES (%s, %s)", (path, stamp), logger=logger
            )
            inv_id = int(cur.lastrowid or 0)
    logger.debug("[INVENTORY] %s indexé (id=%s)", path, inv_id)
    return Inventory(id=inv_id, path=path, indexed_at=stamp)
