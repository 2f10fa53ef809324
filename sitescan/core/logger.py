import logging
from logging.handlers import RotatingFileHandler

from sitescan.core import config

FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | None = None, log_file: str | None = None) -> logging.Logger:
    """
    Configure the "sitescan" logger tree once: console always, rotating file when LOG_FILE is set.
    Module loggers (logging.getLogger(__name__)) inherit from it.
    """
    root = logging.getLogger("sitescan")
    if root.handlers:
        return root

    root.setLevel(level or config.LOG_LEVEL)
    formatter = logging.Formatter(FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    path = log_file if log_file is not None else config.LOG_FILE
    if path:
        file_handler = RotatingFileHandler(path, maxBytes=10_000_000, backupCount=5)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
