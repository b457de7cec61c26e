"""Logging configuration for command-line use.

Library modules only call logging.getLogger(__name__); handlers are
attached here, once, by entry points.
Idempotent: repeated setup_logging() calls don't duplicate handlers.
"""

import logging
from pathlib import Path

LOGGER_NAME = "cutsvg"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Track if logging has been configured (idempotency)
_configured = False


def setup_logging(
    level: "int | str" = logging.INFO,
    log_file: "str | Path | None" = None,
) -> logging.Logger:
    """Attach console (and optional file) handlers to the package logger.

    Args:
        level: Logging level name or number
        log_file: Also write to this file when given

    Returns:
        The configured "cutsvg" logger
    """
    global _configured

    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    if _configured:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Python warnings (e.g. scikit-learn convergence) go through logging too
    logging.captureWarnings(True)

    _configured = True
    return logger
