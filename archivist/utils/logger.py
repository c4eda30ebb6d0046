"""Logger du projet."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import functools
import logging
import logging.handlers
import os
from typing import Any, Optional, ParamSpec, Protocol, TypeVar, cast

from archivist.utils import config
from archivist.utils.log_rotation import rotate_logs


# ---------- Protocole (contrat) ----------
class LoggerProtocol(Protocol):
    """
    Interface minimale d'un logger : niveaux standards + création de loggers enfants.
    """

    def debug(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def exception(self, msg: str, *args: object, **kwargs: Any) -> None: ...

    def get_child(self, suffix: str) -> LoggerProtocol:
        """
        Get child logger.
        """
        ...


# ---------- Classe concrète (instanciable) ----------


@dataclass(frozen=True)
class ArchivistLogger:
    """
    Enveloppe fine autour de logging.Logger qui expose LoggerProtocol.

    Attributes:
        _base: le logger standard sous-jacent.
    """

    _base: logging.Logger

    # expose la même API que le Protocol
    def debug(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.error(msg, *args, **kwargs)

    def exception(self, msg: str, *args: object, **kwargs: Any) -> None:
        self._base.exception(msg, *args, **kwargs)

    def get_child(self, suffix: str) -> LoggerProtocol:
        """
        Crée un logger enfant (nom du parent + "." + suffix).
        """
        return ArchivistLogger(self._base.getChild(suffix))

    @property
    def name(self) -> str:
        return self._base.name


def _ensure_handlers(base: logging.Logger, global_log_file: str, script_log_file: str) -> None:
    if getattr(base, "_archivist_configured", False):
        return

    formatter = logging.Formatter("%(asctime)s - %(levelname)s - [%(name)s] %(message)s")

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    base.addHandler(stream)

    # Global log: rotation quotidienne à minuit, conserver 14 jours
    fh_global = logging.handlers.TimedRotatingFileHandler(
        filename=global_log_file,
        when="midnight",
        backupCount=14,
        encoding="utf-8",
        delay=True,
    )
    fh_global.setFormatter(formatter)
    base.addHandler(fh_global)

    # Script log: même politique
    fh_script = logging.handlers.TimedRotatingFileHandler(
        filename=script_log_file,
        when="midnight",
        backupCount=14,
        encoding="utf-8",
        delay=True,
    )
    fh_script.setFormatter(formatter)
    base.addHandler(fh_script)

    # Évite double impression si root a des handlers
    base.propagate = False

    setattr(base, "_archivist_configured", True)


def get_logger(script_name: str) -> LoggerProtocol:
    """
    Constructeur de logger.

    Crée le dossier de logs si besoin, purge les vieux fichiers et branche les
    handlers (console + fichier global + fichier du script) une seule fois.

    :param script_name: Nom du script ou du module.
    :return: Instanciation de logger.
    """
    log_dir = config.LOG_FILE_PATH
    os.makedirs(log_dir, exist_ok=True)
    global_log_file = os.path.join(log_dir, "Archivist.log")
    script_log_file = os.path.join(log_dir, f"{script_name}.log")

    base = logging.getLogger(script_name)
    if getattr(base, "_archivist_configured", False):
        return ArchivistLogger(base)

    report = rotate_logs(log_dir, config.LOG_ROTATION_DAYS)
    base.setLevel(logging.DEBUG if config.get_str("ENV", "prod").lower() == "dev" else logging.INFO)
    _ensure_handlers(base, global_log_file, script_log_file)
    if report.removed:
        base.info("[LOG ROTATION] %d fichier(s) supprimé(s) dans %s", len(report.removed), log_dir)
    for path, exc in report.failed:
        base.warning("[LOG ROTATION] Erreur suppression %s : %s", path, exc)
    return ArchivistLogger(base)  # ← classe concrète, pas le Protocol


# ---------- Utilities ----------
def ensure_logger(logger: LoggerProtocol | None, module: str) -> LoggerProtocol:
    """
    Retourne le logger fourni, ou un logger de module s'il est absent.
    """
    if logger is None:
        return get_logger(module)
    return logger


# ---------- Décorateur type-safe ----------
P = ParamSpec("P")
R = TypeVar("R")


def with_child_logger(func: Callable[P, R]) -> Callable[P, R]:
    """
    Injecte un logger enfant (module.fonction) quand l'appelant n'en fournit pas.

    :param func: La fonction à décorer
    :return: La fonction décorée
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        current = cast(Optional[LoggerProtocol], kwargs.get("logger"))
        if current is None:
            # Premier hop : on prend le nom de module pour initialiser
            base = ensure_logger(current, func.__module__)
            kwargs["logger"] = _get_or_child(base, func.__name__)
        # Sinon on ne touche pas au logger transmis (pas d'empilement)
        return func(*args, **kwargs)

    return wrapper


def _get_or_child(logger: LoggerProtocol, suffix: str) -> LoggerProtocol:
    base_name = getattr(logger, "name", "")
    if base_name.endswith(f".{suffix}") or base_name == suffix:
        return logger
    return logger.get_child(suffix)
