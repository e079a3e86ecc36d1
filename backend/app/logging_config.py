"""
Follow-Up Unit - Logging Setup
Console logging everywhere, rotating application/error files in production.
"""
import logging
import os
from logging.handlers import TimedRotatingFileHandler

from . import config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def configure_logging() -> None:
    """Install handlers on the root logger once per process."""
    global _configured
    if _configured:
        return

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    root = logging.getLogger()
    root.setLevel(config.LOG_LEVEL)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if config.IS_PRODUCTION:
        os.makedirs(config.LOG_DIR, exist_ok=True)

        app_file = TimedRotatingFileHandler(
            os.path.join(config.LOG_DIR, "application.log"),
            when="midnight",
            backupCount=14,
        )
        app_file.setLevel(logging.INFO)
        app_file.setFormatter(formatter)
        root.addHandler(app_file)

        error_file = TimedRotatingFileHandler(
            os.path.join(config.LOG_DIR, "error.log"),
            when="midnight",
            backupCount=30,
        )
        error_file.setLevel(logging.ERROR)
        error_file.setFormatter(formatter)
        root.addHandler(error_file)

    # SQL echo is noisy at DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
