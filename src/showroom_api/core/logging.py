"""Loguru configuration for the diagnostic channel.

Human-readable lines go to stderr, records bound with ``json_output=True``
are also emitted as JSON, and a rotating ``showroom-api.log`` file sink is
added when a ``log_dir`` is provided.

Audit records never depend on this channel: they are written to the audit
partitions by :class:`showroom_api.lib.audit.writer.AuditLogWriter`.  When
console output is enabled the writer echoes each record here, bound with
``audit=True`` and its event type, actor and origin, and those lines carry
that context after the message.
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"
_AUDIT_SUFFIX = " | event={extra[event_type]} actor={extra[actor_id]} origin={extra[network_origin]}"


def _format(record: Any) -> str:
    """Line template; audit echoes get their event context appended."""
    template = _LOG_FORMAT
    if record["extra"].get("audit"):
        template += _AUDIT_SUFFIX
    return template + "\n{exception}"


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure the Loguru sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            file sink is added (rotated every 24 hours, retained 7 days).
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_format)
    logger.add(
        sys.stderr,
        level=level,
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "showroom-api.log",
            level=level,
            format=_format,
            rotation="24h",
            retention="7 days",
        )
