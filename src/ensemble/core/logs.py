# src/ensemble/core/logs.py
"""Structured event logging for store and rule operations.

Events are kept in a bounded in-memory buffer (useful for inspection and
tests) and forwarded to the ``ensemble.events`` stdlib logger, with the event
fields attached as ``extra`` so the JSON formatter can emit them verbatim.
"""

from __future__ import annotations

import json
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import uuid4


class LogLevel(Enum):
    """Log levels with numeric values for filtering."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class EventType(Enum):
    """Event types for structured logging."""

    SYSTEM = "system"

    # Database operation events
    DATABASE_OPERATION = "database_operation"

    # Consistency rule events
    RULE_CHECK = "rule_check"
    RULE_VIOLATION = "rule_violation"

    # Error events
    ERROR = "error"
    ERROR_HANDLING_START = "error_handling_start"
    ERROR_ROLLBACK = "error_rollback"


class Priority(Enum):
    """Event priority levels."""

    CRITICAL = 1
    HIGH = 2
    NORMAL = 3
    LOW = 4


@dataclass
class StructuredLogEvent:
    """Structured log event with metadata."""

    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: float = field(default_factory=time.time)
    event_type: EventType = EventType.SYSTEM
    level: LogLevel = LogLevel.INFO
    priority: Priority = Priority.NORMAL
    message: str = ""
    component: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp,
            "event_type": self.event_type.value,
            "level": self.level.name,
            "priority": self.priority.name,
            "message": self.message,
            "component": self.component,
            "metadata": self.metadata,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


@dataclass
class EventMetrics:
    """Counters for emitted events."""

    total_events: int = 0
    events_by_type: dict[str, int] = field(default_factory=dict)
    errors: int = 0

    def record_event(self, event: StructuredLogEvent) -> None:
        self.total_events += 1
        key = event.event_type.value
        self.events_by_type[key] = self.events_by_type.get(key, 0) + 1
        if event.level.value >= LogLevel.ERROR.value:
            self.errors += 1


class EventLogger:
    """Structured logger used by the store and rule layers."""

    def __init__(self, max_events: int = 1000, logger_name: str = "ensemble.events"):
        self.max_events = max_events
        self._events: deque[StructuredLogEvent] = deque(maxlen=max_events)
        self._metrics = EventMetrics()
        self._logger = logging.getLogger(logger_name)

    @staticmethod
    def _format_key_metadata(metadata: dict[str, Any]) -> str:
        key_info = []
        if "operation" in metadata:
            key_info.append(f"op:{metadata['operation']}")
        if "table" in metadata:
            key_info.append(f"table:{metadata['table']}")
        if "duration" in metadata:
            key_info.append(f"{metadata['duration'] * 1000:.1f}ms")
        if "success" in metadata:
            key_info.append("ok" if metadata["success"] else "failed")
        return f"<{' | '.join(key_info)}> " if key_info else ""

    def log(
        self,
        event_type: EventType,
        message: str,
        priority: Priority = Priority.NORMAL,
        *,
        level: LogLevel = LogLevel.INFO,
        component: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StructuredLogEvent:
        """Record an event and forward it to the stdlib logger."""
        event = StructuredLogEvent(
            event_type=event_type,
            level=level,
            priority=priority,
            message=message,
            component=component,
            metadata=dict(metadata or {}),
        )
        self._events.append(event)
        self._metrics.record_event(event)

        self._logger.log(
            level.value,
            "[%s] %s%s",
            event_type.value,
            self._format_key_metadata(event.metadata),
            message,
            extra={
                "event_id": event.event_id,
                "event_type": event_type.value,
                "priority": priority.name,
                "component": component,
                "metadata": event.metadata,
            },
        )
        return event

    def debug(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        kwargs.setdefault("priority", Priority.LOW)
        return self.log(EventType.SYSTEM, message, level=LogLevel.DEBUG, **kwargs)

    def info(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        return self.log(EventType.SYSTEM, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        kwargs.setdefault("priority", Priority.HIGH)
        return self.log(EventType.SYSTEM, message, level=LogLevel.WARNING, **kwargs)

    def error(self, message: str, **kwargs: Any) -> StructuredLogEvent:
        kwargs.setdefault("priority", Priority.CRITICAL)
        return self.log(EventType.ERROR, message, level=LogLevel.ERROR, **kwargs)

    def log_rule_violation(
        self, rule: str, message: str, metadata: dict[str, Any] | None = None
    ) -> StructuredLogEvent:
        """Log a rejected mutation; these are expected outcomes, not faults."""
        return self.log(
            EventType.RULE_VIOLATION,
            message,
            Priority.NORMAL,
            component="rules",
            metadata={"rule": rule, **(metadata or {})},
        )

    def log_error_handling_start(
        self,
        error_type: str,
        error_msg: str,
        context: str,
        metadata: dict[str, Any] | None = None,
    ) -> StructuredLogEvent:
        """Log the start of handling a store failure."""
        return self.log(
            EventType.ERROR_HANDLING_START,
            f"Handling {error_type} during {context}: {error_msg}",
            Priority.HIGH,
            level=LogLevel.ERROR,
            metadata={"error_type": error_type, "context": context, **(metadata or {})},
        )

    def get_events(
        self, event_type: EventType | None = None, limit: int = 100
    ) -> list[StructuredLogEvent]:
        """Return the most recent events, optionally filtered by type."""
        events = [
            e for e in self._events if event_type is None or e.event_type == event_type
        ]
        return events[-limit:]

    def get_metrics(self) -> dict[str, Any]:
        return {
            "total_events": self._metrics.total_events,
            "events_by_type": dict(self._metrics.events_by_type),
            "errors": self._metrics.errors,
            "buffered_events": len(self._events),
        }

    def clear(self) -> None:
        """Drop buffered events and reset counters."""
        self._events.clear()
        self._metrics = EventMetrics()


_event_logger: EventLogger | None = None


def get_event_logger() -> EventLogger:
    """Get global event logger instance."""
    global _event_logger
    if _event_logger is None:
        _event_logger = EventLogger()
    return _event_logger


__all__ = [
    "EventLogger",
    "EventType",
    "LogLevel",
    "Priority",
    "StructuredLogEvent",
    "get_event_logger",
]
