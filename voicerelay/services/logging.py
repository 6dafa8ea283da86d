from __future__ import annotations

"""Structured logging setup using structlog and orjson.

Upload references and credentials must never reach the log stream, so a
redaction processor runs ahead of rendering.
"""

import logging
import os
import re
import sys
from typing import Any, MutableMapping, Optional

import orjson
import structlog


REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"upload_url", "audio_url", "authorization", "api_key"})
# upload references AssemblyAI echoes back inside error text
UPLOAD_URL_RE = re.compile(r"https?://cdn\.assemblyai\.com/upload/\S+")


def _orjson_dumps(obj: Any, default: Any | None = None, **_: Any) -> str:
    """Serializer compatible with structlog.JSONRenderer."""
    return orjson.dumps(
        obj,
        default=default,  # type: ignore[arg-type]
        option=orjson.OPT_SORT_KEYS | orjson.OPT_APPEND_NEWLINE,
    ).decode()


def redact_sensitive(_: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    for key, value in event_dict.items():
        if isinstance(value, str) and key not in SENSITIVE_KEYS:
            event_dict[key] = UPLOAD_URL_RE.sub(REDACTED, value)
    return event_dict


def scrub(text: Optional[str], secret: Optional[str]) -> Optional[str]:
    """Remove `secret` from free-form text before it is logged."""
    if not text or not secret:
        return text
    return text.replace(secret, REDACTED)


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with JSON rendering and stdlib bridge.

    LOG_LEVEL env var overrides provided level.
    """
    env_level = os.getenv("LOG_LEVEL")
    if env_level:
        level = env_level
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=numeric_level, handlers=[logging.StreamHandler(sys.stdout)])
    # httpx logs full request URLs at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            redact_sensitive,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(serializer=_orjson_dumps),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(**initial: Any) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, optionally bound to initial fields."""

    logger = structlog.get_logger()
    return logger.bind(**initial) if initial else logger
