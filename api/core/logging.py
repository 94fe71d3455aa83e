"""
Logging setup per environment.

- development: verbose, human-readable
- production: INFO, one key=value line per record
- test: silenced
"""

from __future__ import annotations

import logging
import logging.config
import time

from fastapi import FastAPI, Request

from .config import Settings

logger = logging.getLogger("api.request")

_FORMATS = {
    "development": {
        "format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        "datefmt": "%H:%M:%S",
    },
    "production": {
        "format": "time=%(asctime)s level=%(levelname)s logger=%(name)s msg=%(message)s",
        "datefmt": "%Y-%m-%dT%H:%M:%S%z",
    },
    "test": {
        "format": "%(levelname)s %(name)s: %(message)s",
    },
}


def configure_logging(settings: Settings) -> None:
    level = settings.log_level
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": _FORMATS[settings.ENVIRONMENT]},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"handlers": ["console"], "level": level},
            "loggers": {
                # uvicorn's own access log duplicates the request middleware below.
                "uvicorn.access": {"level": "WARNING"},
                "asyncpg": {"level": "WARNING" if level == "DEBUG" else level},
            },
        }
    )


def add_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "request method=%s path=%s status=%s duration_ms=%.1f",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
