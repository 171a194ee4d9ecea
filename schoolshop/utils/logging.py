# schoolshop/utils/logging.py
import logging
import os

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format=_LOG_FORMAT,
)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
