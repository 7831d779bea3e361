import logging
import sys
import time

from pythonjsonlogger.json import JsonFormatter

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "psycopg.pool")


class UTCJsonFormatter(JsonFormatter):
    converter = time.gmtime


def setup_logging(level: str = "INFO", service: str = "authcore-api") -> None:
    """One JSON line per record on stdout, tagged with the emitting service."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        UTCJsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            static_fields={"service": service},
        )
    )
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel("WARNING")
