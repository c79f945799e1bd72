"""Logging utilities for mxcontent modules."""

import logging


def get_logger(name: str) -> logging.Logger:
    """Get a logger that inherits from the root logger.

    Loggers work with basicConfig() without an explicit setup_logging()
    call. A default level is only set while the root logger has no handlers.

    Args:
        name: Logger name (e.g. 'mxcontent.upload')

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True

    if not logging.getLogger().handlers:
        logger.setLevel(logging.WARNING)

    return logger
