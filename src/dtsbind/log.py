"""Logging setup for the ``dtsbind`` logger tree."""

import logging
import sys
from typing import Optional

logger = logging.getLogger("dtsbind")

_console: Optional[logging.Handler] = None


def setup_logging(verbose: bool = False) -> None:
    """Configure the 'dtsbind' logger (idempotent):
    - verbose=True  -> DEBUG and above on stderr
    - verbose=False -> WARNING and above on stderr
    """
    global _console
    if _console is not None:
        logger.removeHandler(_console)
    _console = logging.StreamHandler(sys.stderr)
    _console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(_console)

    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)
    _console.setLevel(level)
