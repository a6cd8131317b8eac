import os
from logging import INFO, config, getLevelName, getLogger
from typing import Any

LOGGER_NAME = "ip_lookup"


def log_level_from_env() -> int:
    """`LOG_LEVEL` (DEBUG, INFO, WARNING, ERROR) as a number; unknown names fall back to INFO."""
    level = getLevelName(os.getenv("LOG_LEVEL", "INFO").strip().upper())
    return level if isinstance(level, int) else INFO


def build_log_config(level: int | None = None) -> dict[str, Any]:
    """dictConfig for the service: the library logger plus uvicorn's own loggers."""
    if level is None:
        level = log_level_from_env()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "access": {
                "()": "uvicorn.logging.AccessFormatter",
                "fmt": '%(levelprefix)s %(asctime)s - %(client_addr)s - "%(request_line)s" %(status_code)s',
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "use_colors": True,
            },
            "default": {
                "()": "uvicorn.logging.DefaultFormatter",
                "fmt": "%(levelprefix)s %(asctime)s - %(name)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
                "use_colors": True,
            },
        },
        "handlers": {
            "access": {"class": "logging.StreamHandler", "formatter": "access", "stream": "ext://sys.stdout"},
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            LOGGER_NAME: {"handlers": ["default"], "level": level, "propagate": False},
            "uvicorn": {"handlers": ["default"], "level": level, "propagate": True},
            "uvicorn.access": {"handlers": ["access"], "level": level, "propagate": False},
            "uvicorn.error": {"level": level, "propagate": False},
        },
    }


def configure_logging(level: int | None = None) -> None:
    """Apply `build_log_config`. Only the service calls this; importing the library never does."""
    config.dictConfig(build_log_config(level))


logger = getLogger(LOGGER_NAME)
