"""Logging bootstrap utilities and the diagnostic trace sink."""

from __future__ import annotations

from collections.abc import Callable
import logging
import os
from pathlib import Path
from typing import Any

import structlog

LOGGER = logging.getLogger(__name__)

TRACE_LOGGER_NAME = "orbital.trace"

TraceSink = Callable[[str, str, Any], None]


def _best_effort_private_permissions(path: Path) -> None:
    if os.name != "posix":
        return
    try:
        path.chmod(0o600)
    except OSError:
        logging.getLogger(__name__).warning(
            "Unable to enforce 0600 permissions for %s", path
        )


def _app_only_filter(record: logging.LogRecord) -> bool:
    return record.name.startswith("orbital")


def _console_filter(floor: int) -> Callable[[logging.LogRecord], bool]:
    """Pass app records at ``floor`` or above, and every trace record."""

    def _filter(record: logging.LogRecord) -> bool:
        if not _app_only_filter(record):
            return False
        # Trace records are only emitted while the Tracer is enabled.
        return record.levelno >= floor or record.name == TRACE_LOGGER_NAME

    return _filter


def _configure_structlog(final_processor: Any) -> None:
    # Route structlog through stdlib logging so its events share our handlers.
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            final_processor,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _build_formatter(structured: bool) -> logging.Formatter:
    if not structured:
        _configure_structlog(
            structlog.processors.KeyValueRenderer(
                key_order=["event", "kind", "subject", "data"], drop_missing=True
            )
        )
        return logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")

    # Both logging.getLogger(__name__) and structlog.get_logger() produce JSON.
    _configure_structlog(structlog.stdlib.ProcessorFormatter.wrap_for_formatter)
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(
            ensure_ascii=False, separators=(",", ":"), default=repr
        ),
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ],
    )


def configure_logging(logging_config: dict[str, Any]) -> None:
    """Configure root logging according to app config using structlog."""
    level_name = str(logging_config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    structured = bool(logging_config.get("structured", True))
    log_to_file = bool(logging_config.get("log_to_file", False))
    log_file_path = str(
        logging_config.get("log_file_path", "~/.local/state/orbital/orbital.log")
    )

    # Reset stdlib root logger handlers and level.
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    logging.getLogger(TRACE_LOGGER_NAME).setLevel(min(level, logging.INFO))

    formatter = _build_formatter(structured)

    # Only show our own logs on stderr to reduce noise.
    stderr_handler = logging.StreamHandler()
    stderr_handler.setLevel(min(level, logging.INFO))
    stderr_handler.setFormatter(formatter)
    stderr_handler.addFilter(_console_filter(max(level, logging.WARNING)))
    root.addHandler(stderr_handler)

    if log_to_file:
        target = Path(log_file_path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        _best_effort_private_permissions(target)


class Tracer:
    """Gate for diagnostic trace output on publish, set and record.

    ``enabled`` is a plain attribute so debug mode can be flipped at runtime.
    Trace entries go to ``sink`` when one is given, otherwise to the
    ``orbital.trace`` structlog logger.
    """

    def __init__(self, enabled: bool = False, sink: TraceSink | None = None) -> None:
        self.enabled = enabled
        self._sink = sink

    def toggle(self) -> bool:
        self.enabled = not self.enabled
        LOGGER.info(
            "diagnostics.toggled",
            extra={"event": "diagnostics.toggled", "enabled": self.enabled},
        )
        return self.enabled

    def trace(self, kind: str, subject: str, data: Any = None) -> None:
        if not self.enabled:
            return
        try:
            if self._sink is not None:
                self._sink(kind, subject, data)
            else:
                structlog.get_logger(TRACE_LOGGER_NAME).info(
                    TRACE_LOGGER_NAME, kind=kind, subject=subject, data=data
                )
        except Exception:  # noqa: BLE001 - diagnostics must never break dispatch.
            LOGGER.debug("trace.sink.failed", exc_info=True)
