"""Logging configuration for nestegg.

All modules log through children of the ``nestegg`` logger, obtained with
``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging

from nestegg.core.config import Settings

LOGGER_NAME = "nestegg"


def setup_logging(config: Settings) -> logging.Logger:
    """Attach a console handler to the ``nestegg`` logger.

    Safe to call more than once; existing handlers are replaced.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.log_level.upper())

    # Clear any existing handlers (in case this is called multiple times)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(config.log_level.upper())
    console_handler.setFormatter(logging.Formatter(config.log_format, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(console_handler)

    return logger
