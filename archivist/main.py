"""
# main.py : worker des bundles (cron ou service).
"""

from __future__ import annotations

import argparse

from archivist.io.path_collapser import PathCollapser
from archivist.models.exceptions import ConfigurationError
from archivist.sql.db_connection import connection_factory
from archivist.utils.config import ConfigError, load_settings
from archivist.utils.logger import get_logger
from archivist.utils.safe_runner import safe_main
from archivist.watcher.poller import load_handler, run_poller

logger = get_logger("Archivist Worker")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Traite la file des bundles d'archive.")
    parser.add_argument("--once", action="store_true", help="vide les jobs prêts puis quitte (cron)")
    parser.add_argument("--interval", type=float, default=None, help="pause entre deux passages (secondes)")
    return parser


@safe_main
def main(argv: list[str] | None = None) -> int:
    """
    Valide la configuration (grammaire comprise) puis lance la boucle.
    """
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
        # échoue ici, avant tout traitement, si la grammaire est invalide
        PathCollapser(settings.path_grammar, settings.archive_root)
        handler = load_handler(settings.archive_handler)
    except (ConfigError, ConfigurationError) as exc:
        logger.error("Erreur de configuration: %s", exc)
        return 2

    run_poller(
        connection_factory(settings),
        handler,
        interval=args.interval if args.interval is not None else settings.poll_interval,
        once=args.once,
        logger=logger,
    )
    return 0


if __name__ == "__main__":
    main()
