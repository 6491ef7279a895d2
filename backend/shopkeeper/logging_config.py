# Overview: Logging setup for the shopkeeper logger hierarchy.

from __future__ import annotations

import logging

from flask import Flask

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(app: Flask) -> None:
    """
    Attach one stream handler to the "shopkeeper" logger and apply LOG_LEVEL.

    Service modules log through logging.getLogger(__name__), so everything
    under shopkeeper.* ends up here. Routes keep using current_app.logger.
    """
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger("shopkeeper")
    logger.setLevel(level)

    if not any(getattr(h, "_shopkeeper", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._shopkeeper = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    app.logger.setLevel(level)
