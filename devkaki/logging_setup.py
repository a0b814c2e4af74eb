"""Logging configuration for the devkaki CLI."""

import logging
import sys


def setup_logging(level: int = logging.WARNING) -> None:
    """Send log records to stderr at the given level.

    Call this once, before the first log call. Existing root handlers are
    removed to avoid duplicate lines.
    """
    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)

    logging.captureWarnings(True)
