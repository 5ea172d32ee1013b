import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.logging import RichHandler


LOGGER_NAME = "solbridge_client"


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        return json.dumps(log_record)


def setup_logging(level: int = logging.INFO, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Configures the library logger.

    Adds a rich console handler, and when log_dir is given a rotating JSON
    file (failures.log) that receives WARNING and above: refresh failures,
    forced logouts, requests that failed without a response.
    Calling this more than once does not stack handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(rich_tracebacks=True, show_path=False))

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
            handler = RotatingFileHandler(
                os.path.join(log_dir, "failures.log"),
                maxBytes=5 * 1024 * 1024,  # 5 MB
                backupCount=2,
            )
            handler.setLevel(logging.WARNING)
            handler.setFormatter(JsonFormatter())
            logger.addHandler(handler)

    return logger
