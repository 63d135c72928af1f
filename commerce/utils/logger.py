import logging


def get_logger(name: str) -> logging.Logger:
    """Module logger; handlers and levels come from ``setup_logging``."""
    return logging.getLogger(name)
