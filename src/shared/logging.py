"""
Consistent logging setup for the pipeline, the query layer and the gateway.
"""

import logging
import time
from contextlib import contextmanager


def setup_logging(component: str, level: str = "INFO") -> logging.Logger:
    """
    Configure logging for a component.

    Args:
        component: Name of the component (used as logger name).
        level: Log level string (e.g. 'INFO', 'DEBUG').

    Returns:
        Configured logger instance.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
    )
    return logging.getLogger(component)


@contextmanager
def log_duration(logger: logging.Logger, message: str, *args):
    """Log how long the wrapped block took, at DEBUG level."""
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - started
        logger.debug(message + " took %.3fs", *args, elapsed)
