"""
Audit event value object and sink interface.

Every role mutation and every workflow call produces one ``AuditEvent``.
Where events go is the caller's business: the services only see an
``AuditSink``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class AuditEvent:
    """One audited action: who did what to which resource."""

    subject_id: str
    action: str
    resource: str
    resource_id: str
    timestamp: datetime
    changes: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "action": self.action,
            "resource": self.resource,
            "resource_id": self.resource_id,
            "timestamp": self.timestamp,
            "changes": dict(self.changes),
        }


@runtime_checkable
class AuditSink(Protocol):
    """Receives audit events. Implementations may raise; callers swallow."""

    def emit(self, event: AuditEvent) -> None: ...
