import logging
from logging.config import dictConfig

from paths import LOG_DIR, ensure_directories

LOG_FILE = LOG_DIR / "teselado.log"

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s [%(levelname)s] %(name)s (%(threadName)s): %(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
            "level": "INFO",
        },
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "default",
            "filename": str(LOG_FILE),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "encoding": "utf-8",
            "level": "INFO",
        },
    },
    "root": {
        "level": "INFO",
        "handlers": ["console", "file"],
    },
}

_configured = False

def get_logger(name: str = "teselado") -> logging.Logger:
    global _configured
    if not _configured:
        ensure_directories((LOG_DIR,))
        dictConfig(_DICT_CONFIG)
        _configured = True
    return logging.getLogger(name)
