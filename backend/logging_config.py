import logging
import sys

from config import LOG_LEVEL


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    ))

    root.setLevel(LOG_LEVEL.upper())
    root.addHandler(handler)
