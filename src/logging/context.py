# src/logging/context.py — v2
"""Contextual logging support: attach the current document and stage to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per document task.
_document: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    document: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(document=_document.get(), stage=_stage.get())


def set_document_context(document: str, stage: str | None = None) -> None:
    """Set document-level context.

    Each asyncio task runs in a copy of the context, so a value set inside a
    stage task never leaks into sibling tasks.
    """
    _document.set(document)
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _document.set(None)
    _stage.set(None)
