import logging
import os
from logging.handlers import RotatingFileHandler

log_dir = os.path.join(os.getcwd(), "logs")
if not os.path.exists(log_dir):
    os.makedirs(log_dir)

log_file_path = os.path.join(log_dir, "foghorn.log")


def get_logger(name: str) -> logging.Logger:
    """
    Creates a logger instance that writes to console AND a file.

    Structured fields go through ``extra=``, e.g.
    ``logger.info("Scraped site", extra={"site_id": site.id})``.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    file_handler = RotatingFileHandler(log_file_path, maxBytes=10_000_000, backupCount=5)
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.INFO)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def flush_logger(logger: logging.Logger) -> None:
    """Flush every handler attached to the logger (end of a worker run)."""
    for handler in logger.handlers:
        handler.flush()
