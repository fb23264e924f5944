"""Logging utilities."""

from __future__ import annotations

import contextlib
import contextvars
import logging
from typing import Any

from rich.logging import RichHandler


_op_var: contextvars.ContextVar[str] = contextvars.ContextVar("practicesheet_op", default="-")
_sheet_var: contextvars.ContextVar[str] = contextvars.ContextVar("practicesheet_sheet", default="-")


class _ContextFilter(logging.Filter):
    """Inject operation context into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.op = _op_var.get()  # type: ignore[attr-defined]
        record.sheet = _sheet_var.get()  # type: ignore[attr-defined]
        return True


@contextlib.contextmanager
def operation_context(*, op: str, sheet: str | None = None) -> Any:
    """Temporarily bind the current store operation for structured logging.

    Args:
        op: Operation name, e.g. ``add_topic``.
        sheet: Optional sheet identifier (storage key or source url).
    """

    token_op = _op_var.set(op)
    token_sheet = _sheet_var.set(sheet or _sheet_var.get())
    try:
        yield
    finally:
        _op_var.reset(token_op)
        _sheet_var.reset(token_sheet)


def configure_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Args:
        level: Logging level name.
    """

    handler = RichHandler(rich_tracebacks=True, show_time=True, show_level=True)
    handler.addFilter(_ContextFilter())

    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s sheet=%(sheet)s op=%(op)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    # Avoid duplicate handlers if configure_logging is called multiple times
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(handler)
    else:
        for h in root.handlers:
            if isinstance(h, RichHandler):
                if not any(isinstance(f, _ContextFilter) for f in h.filters):
                    h.addFilter(_ContextFilter())
                h.setFormatter(formatter)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""

    return logging.getLogger(name)


def log_exception(logger: logging.Logger, msg: str, **context: Any) -> None:
    """Log an exception with optional structured context."""

    if context:
        logger.exception("%s | context=%s", msg, context)
    else:
        logger.exception("%s", msg)
