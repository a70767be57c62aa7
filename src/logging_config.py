import logging
import sys


def setup_logging(level: int = logging.INFO):
    """Configures logging for scripts and the API process."""
    logger = logging.getLogger()
    logger.setLevel(level)

    while logger.hasHandlers():
        logger.removeHandler(logger.handlers[0])

    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname).1s | %(name)-30.30s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
