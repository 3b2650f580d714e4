from __future__ import annotations

import logging

from pythonjsonlogger import jsonlogger

from songorders.config import settings

# libraries that log every request at INFO
_QUIET_LOGGERS = ("httpx", "uvicorn.access", "asyncpg")


def build_formatter() -> jsonlogger.JsonFormatter:
    """One JSON object per line, stamped with the service name."""
    return jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
        static_fields={"service": settings.SERVICE_NAME},
    )


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))

    # the API and the recovery worker both call this; only the first call installs a handler
    if not any(getattr(h, "_songorders", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(build_formatter())
        handler._songorders = True
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
