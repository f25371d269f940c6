"""Log sink setup shared by the CLI and embedding applications."""

import sys
from typing import Optional

from loguru import logger

from team_scrambler.config import LoggingConfig, config


def configure_logging(
    logging_config: Optional[LoggingConfig] = None, verbose: bool = False
) -> None:
    """Replace loguru's sinks with a single stderr sink.

    DEBUG is used when ``verbose`` or ``debug_logs`` is set, otherwise the
    configured level.
    """
    settings = logging_config or config.logging
    level = "DEBUG" if verbose or settings.debug_logs else settings.level
    logger.remove()
    logger.add(sys.stderr, level=level)
