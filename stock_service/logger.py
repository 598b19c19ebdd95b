import logging
import json
from logging.handlers import RotatingFileHandler

from .config import LOG_FILE, LOG_LEVEL


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_object = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
        }
        # If the message is a dictionary, merge it into the log object
        if isinstance(record.msg, dict):
            log_object.update(record.msg)
        else:
            log_object["message"] = record.getMessage()

        return json.dumps(log_object)


def setup_logger(name: str = "service_logger", log_file: str = LOG_FILE, level: str = LOG_LEVEL):
    """
    Sets up a logger to output structured JSON logs to a rotating file.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level, logging.INFO))
    logger.propagate = False  # Prevent logs from being duplicated by the root logger

    # Avoid adding handlers multiple times
    if not logger.handlers:
        handler = RotatingFileHandler(log_file, maxBytes=10485760, backupCount=5)  # 10MB per file
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)

    return logger

# Initialize and export the logger
service_logger = setup_logger()
