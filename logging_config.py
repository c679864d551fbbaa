# logging_config.py
import json
import logging
import os

TEXT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
QUIET_LOGGERS = ("openai", "httpx", "httpcore")


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    def format(self, record):
        line = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line)


def configure_logging(level: str = None, fmt: str = None):
    """Point the root logger at stderr. Defaults come from LOG_LEVEL / LOG_FORMAT."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    fmt = (fmt or os.getenv("LOG_FORMAT", "text")).lower()

    handler = logging.StreamHandler()
    handler.setFormatter(JsonLineFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    root = logging.getLogger()
    # drop existing handlers without closing them
    root.handlers.clear()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), handlers=[handler])

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
