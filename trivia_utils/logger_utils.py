"""
JSON logging for the sync layer.

Every record is one JSON object per line on stdout. Keys passed through
`extra=` (`component`, `trivia_id`, `attempt`, ...) become top-level fields.
"""
import logging
import sys
from typing import Optional

from pythonjsonlogger import jsonlogger

from src.infrastructure.config import settings

LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(module)s %(funcName)s %(message)s'


def get_logger(name: str = "triviasync", log_level: Optional[str] = None) -> logging.Logger:
    """
    Return the named logger, attaching the stdout JSON handler on first use.

    `log_level` defaults to `settings.LOG_LEVEL`. Repeated calls only adjust
    the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel((log_level or settings.LOG_LEVEL).upper())
    logger.propagate = False

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            jsonlogger.JsonFormatter(LOG_FORMAT, rename_fields={"levelname": "level"})
        )
        logger.addHandler(handler)

    return logger


logger = get_logger()
