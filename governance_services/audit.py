"""
governance_services.audit -- Audit sink implementations.

Sinks receive ``AuditEvent`` values from the role store and the workflow
manager.  ``emit_safely`` is the only way services call a sink: a sink
failure is logged and never undoes a decision already taken.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from governance_kernel.domain.audit import AuditEvent, AuditSink
from governance_kernel.logging_config import get_logger

logger = get_logger("services.audit")


class LoggingAuditSink:
    """Writes each event as a structured ``audit_event`` log record."""

    def __init__(self, logger_name: str = "audit") -> None:
        self._logger = get_logger(logger_name)

    def emit(self, event: AuditEvent) -> None:
        self._logger.info(
            "audit_event",
            extra={
                "audit_subject_id": event.subject_id,
                "audit_action": event.action,
                "audit_resource": event.resource,
                "audit_resource_id": event.resource_id,
                "audit_timestamp": event.timestamp,
                "audit_changes": event.changes,
            },
        )


class InMemoryAuditSink:
    """Keeps events in memory. Thread-safe."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[AuditEvent] = []

    def emit(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> tuple[AuditEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def for_resource(self, resource: str, resource_id: str | None = None) -> tuple[AuditEvent, ...]:
        return tuple(
            e for e in self.events
            if e.resource == resource and (resource_id is None or e.resource_id == resource_id)
        )

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class CompositeAuditSink:
    """Fans an event out to several sinks; one failing sink does not stop the rest."""

    def __init__(self, sinks: Iterable[AuditSink]) -> None:
        self._sinks = tuple(sinks)

    def emit(self, event: AuditEvent) -> None:
        for sink in self._sinks:
            emit_safely(sink, event)


def emit_safely(sink: AuditSink | None, event: AuditEvent) -> None:
    """Deliver ``event``; log and swallow any sink failure."""
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "audit_emit_failed",
            extra={
                "sink": type(sink).__name__,
                "audit_action": event.action,
                "audit_resource_id": event.resource_id,
                "error": str(exc),
            },
        )
