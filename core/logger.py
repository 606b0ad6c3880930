import logging
import sys
import json
from .config import settings

class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "funcName": record.funcName,
            "lineNo": record.lineno
        }
        # Structured fields passed as logger.info(..., extra={"context": {...}})
        context = getattr(record, "context", None)
        if context:
            log_record["context"] = context
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)

def setup_logger(name: str, level: str = None):
    logger = logging.getLogger(name)
    logger.setLevel(level or settings.LOG_LEVEL)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)

    return logger

logger = setup_logger("chat_agent")
