"""
Décorateur des points d'entrée (cron ou service).
"""

from collections.abc import Callable
from functools import wraps
import sys
from typing import Any

from archivist.models.exceptions import ArchivistError
from archivist.utils.logger import get_logger

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def safe_main(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Convertit le résultat de main en code de sortie.

    Un int retourné est repris tel quel (None -> 0). Toute exception est
    journalisée avec sa trace (code et contexte pour une ArchivistError) et
    donne 1 ; un Ctrl-C arrête le worker proprement avec 130.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        logger = get_logger("safe_main")
        try:
            result = func(*args, **kwargs)
        except KeyboardInterrupt:
            logger.warning("[MAIN] Interrompu par l'utilisateur")
            sys.exit(EXIT_INTERRUPTED)
        except ArchivistError as exc:
            logger.exception("[MAIN] Erreur fatale %s | ctx=%r", exc, exc.ctx)
            sys.exit(EXIT_FAILURE)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("[MAIN] Erreur inattendue: %s", exc)
            sys.exit(EXIT_FAILURE)
        sys.exit(result if isinstance(result, int) else EXIT_OK)

    return wrapper
