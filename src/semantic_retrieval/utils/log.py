"""Logging setup for the API process.

Library code never configures logging itself: components log through
the logger injected into their constructor, falling back to
``logging.getLogger(__name__)``. Only the process entry point calls
``configure_logging``.
"""

import logging
import sys

PACKAGE_LOGGER = "semantic_retrieval"


def configure_logging(level: str = "INFO", logger_name: str = PACKAGE_LOGGER) -> logging.Logger:
    """Attach a console handler to the package logger.

    Calling it again replaces the previous handler instead of stacking
    a second one.

    Args:
        level: Logging level name (DEBUG, INFO, ...)
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_semantic_retrieval", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler._semantic_retrieval = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logger
