"""Purge des vieux fichiers de log (backups TimedRotatingFileHandler compris)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import time


@dataclass(slots=True)
class RotationReport:
    removed: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, OSError]] = field(default_factory=list)


def rotate_logs(log_dir: str | Path, keep_days: int = 30, *, now: float | None = None) -> RotationReport:
    """
    Supprime les fichiers de log_dir dont la date de modification dépasse keep_days.

    Les sous-dossiers ne sont pas parcourus. keep_days <= 0 désactive la purge.
    Un dossier absent n'est pas une erreur (rien à purger).
    """
    report = RotationReport()
    root = Path(log_dir)
    if keep_days <= 0 or not root.is_dir():
        return report

    cutoff = (now if now is not None else time.time()) - keep_days * 86400
    for path in sorted(root.iterdir()):
        if not path.is_file() or path.stat().st_mtime >= cutoff:
            continue
        try:
            path.unlink()
        except OSError as exc:
            report.failed.append((path, exc))
            continue
        report.removed.append(path)
    return report
