import logging
import sys

from aisentinel.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str = "aisentinel") -> logging.Logger:
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        log.setLevel(settings.LOG_LEVEL.upper())
    return log


def mask_token(token) -> str:
    # tokens never reach the log in full
    if not token:
        return "missing"
    return f"{token[:20]}..."


logger = get_logger()
