"""
Logging configuration for cobrems.

All package loggers live under the ``cobrems`` hierarchy so that a host
generator can route or silence them without touching its own root logger.
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "cobrems"
DEFAULT_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO", format_string: Optional[str] = None, stream: Optional[object] = None
) -> logging.Logger:
    """
    Configure the ``cobrems`` logger hierarchy.

    Any handlers previously installed by this function are replaced, so it is
    safe to call repeatedly (e.g. once per worker).

    Parameters
    ----------
    level : str
        Logging level: 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'
    format_string : str, optional
        Custom format string. If None, uses default format.
    stream : file-like object, optional
        Stream to write logs to. If None, uses sys.stderr.

    Returns
    -------
    logging.Logger
        The configured package root logger
    """
    if format_string is None:
        format_string = DEFAULT_FORMAT

    if stream is None:
        stream = sys.stderr

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper()))
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Parameters
    ----------
    name : str
        Logger name relative to the package (e.g. 'generator.radiator')

    Returns
    -------
    logging.Logger
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
