"""
Structured logging configuration for the engine.
Every module gets its logger through setup_logger so output format and
level stay consistent between the library, the Flask adapter and the CLI.
"""
import logging
import os
import sys

# Configure logging format
LOG_FORMAT = '[%(asctime)s] %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _default_level():
    level_name = os.getenv('LOG_LEVEL', 'INFO').upper()
    return getattr(logging, level_name, logging.INFO)


def setup_logger(name: str, level=None):
    """
    Create a configured logger instance.

    Args:
        name: Logger name (typically __name__ from calling module)
        level: Logging level; defaults to LOG_LEVEL from the environment

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only add handler if logger doesn't have one yet
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(handler)
        # Avoid double output when the root logger is configured too
        logger.propagate = False

    logger.setLevel(level if level is not None else _default_level())
    return logger
