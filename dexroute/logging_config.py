"""
Log pipeline for the dexroute service and CLI.

Application code logs through stdlib ``logging``; records are funnelled into
structlog's ``ProcessorFormatter`` so request-scoped context (``request_id``
bound by the HTTP middleware) and credential masking apply uniformly. Output
is one JSON object per line unless the level is DEBUG or ``json_logs`` is
switched off, in which case the console renderer is used.
"""

import logging
import re
import sys
from typing import Any, Dict, List, MutableMapping, Optional

import structlog

from .config import settings

SERVICE_NAME = "dexroute"

# Event keys whose values are always credentials
_CREDENTIAL_KEYS = frozenset({"token", "bearer_token", "private_key", "signing_key", "authorization"})
_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9\-_.]+")

# Third-party loggers and the level they run at outside DEBUG
_NOISY_LOGGERS: Dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


def redact_secrets(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask session tokens and keys, by key name and inside the message."""
    for key, value in list(event_dict.items()):
        if not value:
            continue
        if key.lower() in _CREDENTIAL_KEYS:
            event_dict[key] = "***"
        elif isinstance(value, str) and "Bearer" in value:
            event_dict[key] = _BEARER_RE.sub(r"\1***", value)
    return event_dict


def add_service(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _pre_chain() -> List[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service,
        redact_secrets,
    ]


def _renderer(json_logs: bool) -> structlog.types.Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(log_level: Optional[str] = None, *, json_logs: Optional[bool] = None) -> None:
    """Install the dexroute log pipeline on the root logger.

    Args:
        log_level: Level name; falls back to ``settings.log_level``
        json_logs: Force JSON (True) or console (False) output; by default
            JSON everywhere except DEBUG
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    if json_logs is None:
        json_logs = level != logging.DEBUG

    pre_chain = _pre_chain()
    final: List[structlog.types.Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if json_logs:
        # Console rendering prints tracebacks itself
        final.append(structlog.processors.format_exc_info)
    final.append(_renderer(json_logs))

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(foreign_pre_chain=pre_chain, processors=final))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name, quiet_level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(logging.DEBUG if level == logging.DEBUG else quiet_level)
