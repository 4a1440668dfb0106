"""
Logging for the storefront client.

Everything logs under the ``storefront`` logger, which gets its own stdout
handler the first time this module is imported. Applications that set up
logging themselves can call ``configure_logging`` again or attach their
own handlers; the root logger is left alone.

Usage:
    from storefront.logging import get_logger
    logger = get_logger(__name__)
"""

import logging
import os
import sys
from functools import cache

PACKAGE_LOGGER = "storefront"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_COMPACT = "%(levelname)s - %(name)s - %(message)s"

# Record ids look like cart_<user>_<product>_<suffix>
_RECORD_ID_PREFIX = "cart_"
_CONTROL_ESCAPES = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def configure_logging(level: str | None = None, compact: bool | None = None) -> logging.Logger:
    """
    Set level and format of the ``storefront`` logger.

    Args:
        level: Level name; defaults to LOG_LEVEL, then INFO
        compact: Drop timestamps; defaults to STOREFRONT_ENV == "production"
    """
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    if compact is None:
        compact = os.environ.get("STOREFRONT_ENV") == "production"

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level_name, logging.INFO))

    handler = next((h for h in package_logger.handlers if getattr(h, "_storefront", False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler._storefront = True
        package_logger.addHandler(handler)
        package_logger.propagate = False
    handler.setFormatter(logging.Formatter(LOG_FORMAT_COMPACT if compact else LOG_FORMAT))

    # Cart traffic is one request per click; per-request lines drown the rest
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return package_logger


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a storefront module, always inside the package namespace."""
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | None, max_length: int = 24) -> str:
    """
    Make a user, product or record id safe to log.

    Control characters are escaped so an id cannot forge log lines, the user
    id embedded in cart record ids is masked, and long values are truncated.
    """
    if not id_value:
        return "N/A"
    text = str(id_value).translate(_CONTROL_ESCAPES)
    if text.startswith(_RECORD_ID_PREFIX) and text.count("_") >= 3:
        text = f"{_RECORD_ID_PREFIX}*_{text.rsplit('_', 1)[1]}"
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_COMPACT",
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
]
