import logging
import os

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging() -> logging.Logger:
    """Library-friendly: do NOT touch root or add handlers.

    Ensure the 'daycare_system' logger exists, set its level, add NullHandler to avoid warnings.
    """
    logger = logging.getLogger("daycare_system")
    logger.setLevel(getattr(logging, _DEFAULT_LEVEL, logging.INFO))
    if not any(isinstance(h, logging.NullHandler) for h in logger.handlers):
        logger.addHandler(logging.NullHandler())
    logger.propagate = True
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    base = logging.getLogger("daycare_system")
    return base.getChild(name) if name else base


logger = setup_logging()
