# archivist/models/cursor_protocol.py

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol


class DictCursorProtocol(Protocol):
    """
    Curseur pymysql (DictCursor) tel que le voient les fonctions SQL d'archivist.
    """

    rowcount: int
    lastrowid: int | None

    def __enter__(self) -> DictCursorProtocol: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...

    def execute(
        self,
        query: str,
        args: Sequence[Any] | Mapping[str, Any] | None = ...,
    ) -> Any: ...

    # vidage des result sets restants après une erreur (safe_execute_dict)
    def nextset(self) -> bool | None: ...

    def fetchone(self) -> dict[str, Any] | None: ...
    def fetchall(self) -> Sequence[dict[str, Any]]: ...


class ConnectionProtocol(Protocol):
    """
    Connexion transactionnelle : db_conn ouvre, valide ou annule, puis ferme.
    """

    def cursor(self, cursor: Any = ...) -> Any: ...
    def begin(self) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def close(self) -> None: ...
