"""Structured progress and error events emitted by the engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

BATCH_STARTED = "batch_started"
CHUNK_SCHEDULED = "chunk_scheduled"
FILE_CONVERTED = "file_converted"
FILE_FAILED = "file_failed"
BATCH_COMPLETED = "batch_completed"


@dataclass(frozen=True)
class ConversionEvent:
    """A named event with flat, loggable fields."""

    name: str
    fields: Mapping[str, Any] = field(default_factory=dict)


class EventSink(Protocol):
    def record(self, event: ConversionEvent) -> None: ...


_MESSAGES = {
    BATCH_STARTED: "converting start",
    CHUNK_SCHEDULED: "scheduled conversion chunk",
    FILE_CONVERTED: "file created",
    FILE_FAILED: "failed to convert file",
    BATCH_COMPLETED: "converting ended",
}
_LEVELS = {
    BATCH_STARTED: logging.INFO,
    CHUNK_SCHEDULED: logging.DEBUG,
    FILE_CONVERTED: logging.DEBUG,
    FILE_FAILED: logging.ERROR,
    BATCH_COMPLETED: logging.INFO,
}


class LoggingEventSink:
    """Forward events to a :class:`logging.Logger` as ``extra`` fields.

    Must be safe to call from pool worker threads; the standard logging
    handlers already serialise emission.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def record(self, event: ConversionEvent) -> None:
        level = _LEVELS.get(event.name, logging.INFO)
        message = _MESSAGES.get(event.name, event.name)
        extra = {"event": event.name}
        extra.update(event.fields)
        self._logger.log(level, message, extra=extra)


__all__ = [
    "BATCH_COMPLETED",
    "BATCH_STARTED",
    "CHUNK_SCHEDULED",
    "ConversionEvent",
    "EventSink",
    "FILE_CONVERTED",
    "FILE_FAILED",
    "LoggingEventSink",
]
