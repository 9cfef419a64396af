"""Logging setup for the raml_codegen package."""

import logging
import os

LOG_LEVEL_ENV = "RAML_CODEGEN_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure the raml_codegen logger.

    The level comes from the argument, then RAML_CODEGEN_LOG_LEVEL, then
    WARNING, so a successful run stays quiet.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")
    log_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger("raml_codegen")
    logger.setLevel(log_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
