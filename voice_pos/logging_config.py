"""
Logging configuration for the voice POS application.

Usage:
    from voice_pos.logging_config import setup_logging
    setup_logging()  # Call once at application startup

Environment variables:
    LOG_LEVEL: Set to DEBUG, INFO, WARNING, ERROR, or CRITICAL (default: INFO)
    LOG_RELAY_FRAMES: Set to 1/true/yes to log every relay frame sent or
        received (voice_pos.relay at DEBUG) without turning on DEBUG for
        the rest of the application.

The live model key travels in the stream URL (``?key=...``), and the
websockets library logs handshake request lines at DEBUG. Every root handler
gets a filter that masks the key before a record is emitted.
"""
import logging
import os
import re
import sys

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Libraries that log per request or per frame at DEBUG
TRANSPORT_LOGGERS = ("httpx", "urllib3", "websockets", "sqlalchemy.engine")

RELAY_LOGGER = "voice_pos.relay"

_KEY_PARAM = re.compile(r"([?&]key=)[^&\s'\"]+")


class RedactApiKeyFilter(logging.Filter):
    """Masks ``key=`` query parameters in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _KEY_PARAM.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def setup_logging(level: str = None, relay_frames: bool = None) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If not provided, reads from LOG_LEVEL env var, defaults to INFO.
        relay_frames: Log relay traffic frame by frame. If not provided,
               reads from LOG_RELAY_FRAMES.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    level = level.upper()
    if level not in VALID_LEVELS:
        level = "INFO"
    if relay_frames is None:
        relay_frames = _env_flag("LOG_RELAY_FRAMES")

    numeric_level = getattr(logging, level)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RedactApiKeyFilter) for f in handler.filters):
            handler.addFilter(RedactApiKeyFilter())

    logging.getLogger("voice_pos").setLevel(numeric_level)
    # NOTSET defers to the voice_pos level
    logging.getLogger(RELAY_LOGGER).setLevel(logging.DEBUG if relay_frames else logging.NOTSET)

    if level != "DEBUG":
        for name in TRANSPORT_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug("Logging configured at %s level (relay frames: %s)", level, relay_frames)
