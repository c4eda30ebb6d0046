"""Horloge par défaut (UTC naïf, comme les colonnes DATETIME)."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
