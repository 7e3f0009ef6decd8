"""Logging setup shared by the API process and the CLI."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``sitecms`` logger.

    Safe to call more than once; the handler is only installed the first time.
    """
    logger = logging.getLogger("sitecms")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(getattr(h, "_sitecms", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._sitecms = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
