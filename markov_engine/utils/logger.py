"""
Logging helpers shared by the service and the generator
"""

import logging
import sys

from markov_engine.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

_configured = False


def setup_logger(name: str) -> logging.Logger:
    """Return a named logger, configuring the root handler on first use"""
    global _configured
    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root = logging.getLogger("markov_engine")
        root.addHandler(handler)
        root.setLevel(settings.LOG_LEVEL.upper())
        _configured = True
    return logging.getLogger(name)


def _format(message: str, fields: dict) -> str:
    if not fields:
        return message
    extras = " ".join(f"{key}={value}" for key, value in fields.items())
    return f"{message} | {extras}"


_service_logger = logging.getLogger("markov_engine.service")


def log_info(message: str, **fields):
    _service_logger.info(_format(message, fields))


def log_warning(message: str, **fields):
    _service_logger.warning(_format(message, fields))


def log_error(message: str, exc_info: bool = False, **fields):
    _service_logger.error(_format(message, fields), exc_info=exc_info)
