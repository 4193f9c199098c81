"""Structured JSON logging configuration."""
import logging
import sys
from pythonjsonlogger import jsonlogger
from billflow.core.config import settings


def setup_logging() -> None:
    """JSON logs to stdout in production, plain text everywhere else."""
    if settings.APP_ENV == "production":
        handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
        handler.setFormatter(formatter)
        logging.root.handlers = [handler]
        logging.root.setLevel(logging.INFO)
    else:
        logging.basicConfig(
            level=logging.DEBUG if settings.APP_ENV == "development" else logging.INFO,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )
    # Engine echo handles SQL output
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
