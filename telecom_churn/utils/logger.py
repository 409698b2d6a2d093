import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

def setup_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """Returns a named logger writing to stdout. Safe to call repeatedly."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid stacking handlers when a module is re-imported
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
