"""Logging configuration for the sonar-mcp server.

Logs go to stderr: stdout carries the MCP protocol when serving over stdio.
"""

import logging
import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

logger = logging.getLogger("sonar_mcp")
logger.setLevel(logging.INFO)

# Only add handler if not already configured
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "[sonar-mcp] %(asctime)s %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logger.addHandler(handler)


def configure_logging(verbose: bool = False) -> None:
    """Switch the package logger between INFO and DEBUG."""
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


@contextmanager
def log_operation(
    operation: str,
    details: dict[str, Any] | None = None,
) -> Generator[None, None, None]:
    """Log the start, completion time, or failure of *operation*.

    Exceptions are logged and re-raised.

    Example:
        with log_operation("get-issues", {"projectKey": "org_repo"}):
            client.get_issues("org_repo")
    """
    details_str = ""
    if details:
        details_str = " " + " ".join(f"{k}={v}" for k, v in details.items())

    logger.debug("Starting %s%s", operation, details_str)
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.warning("%s failed after %.2fs: %s", operation, time.perf_counter() - start, e)
        raise
    logger.info("Completed %s in %.2fs", operation, time.perf_counter() - start)
