"""Logging setup for the MCP server process."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach one stderr handler to the package logger.

    Stdout carries the MCP stdio transport, so nothing may log there.
    Calling this twice does not add a second handler.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The configured ``taskvoice_mcp`` logger
    """
    logger = logging.getLogger("taskvoice_mcp")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)

    return logger
