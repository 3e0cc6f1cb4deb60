"""Root logger setup shared by the API server and scripts."""
from __future__ import annotations

import logging
import sys

from storefront.core.config import Settings


def setup_logging(settings: Settings, level: str | None = None) -> None:
    log_level = level or settings.log_level
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(settings.log_format))
    root_logger.addHandler(stream_handler)

    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured at %s level", log_level.upper())
