"""Module config en lien avec env."""

# config.py
from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv

# Chargement du .env
load_dotenv(os.getenv("ARCHIVIST_ENV_FILE", ".env"))


class ConfigError(Exception):
    """
    Erreur de configuration (.env / variables d'environnement).
    """


# --- Fonctions utilitaires ---


def get_required(key: str) -> str:
    """
    Récupère la valeur d'une variable env requise.

    Lève ConfigError si absente.
    """
    value = os.getenv(key)
    if value is None:
        raise ConfigError(f"[CONFIG ERROR] La variable {key} est requise mais absente.")
    return value


def get_bool(key: str, default: str = "false") -> bool:
    """
    Retourne la variable env convertie en booléen.
    """
    return os.getenv(key, default).lower() in ("true", "1", "yes", "y")


def get_str(key: str, default: str = "") -> str:
    """
    Retourne la variable env sous forme de chaîne.
    """
    return os.getenv(key, default)


def get_int(key: str, default: int = 0) -> int:
    """
    Retourne la variable env convertie en entier.

    Lève ConfigError si conversion impossible.
    """
    raw = os.getenv(key, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"[CONFIG ERROR] La variable {key} doit être un entier (valeur: {raw!r}).") from exc


def get_float(key: str, default: float = 0.0) -> float:
    """
    Retourne la variable env convertie en float.

    Lève ConfigError si conversion impossible.
    """
    raw = os.getenv(key, str(default))
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"[CONFIG ERROR] La variable {key} doit être un float (valeur: {raw!r}).") from exc


# --- Variables d'environnement accessibles globalement ---

# LOGS
LOG_FILE_PATH: str = get_str("LOG_FILE_PATH", "logs")
LOG_ROTATION_DAYS: int = get_int("LOG_ROTATION_DAYS", 30)

DEFAULT_PATH_GRAMMAR = "ignore/project/date"
DEFAULT_POLL_INTERVAL = 300.0


@dataclass(slots=True, frozen=True)
class Settings:
    """
    Réglages du worker, lus à la demande (pas à l'import) pour que le paquet
    reste importable sans .env complet.
    """

    db_host: str
    db_port: int
    db_user: str
    db_password: str
    db_name: str
    archive_root: str
    path_grammar: str
    archive_handler: str
    poll_interval: float


def load_settings() -> Settings:
    """
    Construit les Settings depuis l'environnement ; lève ConfigError si une clé requise manque.
    """
    return Settings(
        db_host=get_required("DB_HOST"),
        db_port=get_int("DB_PORT", 3306),
        db_user=get_required("DB_USER"),
        db_password=get_required("DB_PASSWORD"),
        db_name=get_required("DB_NAME"),
        archive_root=get_required("ARCHIVE_ROOT"),
        path_grammar=get_str("PATH_GRAMMAR", DEFAULT_PATH_GRAMMAR),
        archive_handler=get_required("ARCHIVE_HANDLER"),
        poll_interval=get_float("POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
    )
