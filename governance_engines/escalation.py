"""
governance_engines.escalation -- Pure escalation rule.

An instance is due for escalation when its workflow has auto_escalate
set and either
    - no history activity for longer than ``escalation_hours``, or
    - it has been running longer than ``max_duration_days``.

Terminal and already-escalated instances are never due.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from governance_kernel.domain.workflow import (
    WorkflowDefinition,
    WorkflowInstance,
    WorkflowStatus,
)


def escalation_reason(
    instance: WorkflowInstance,
    definition: WorkflowDefinition,
    now: datetime,
) -> str | None:
    """Return why ``instance`` should escalate at ``now``, or None."""
    if not definition.auto_escalate:
        return None
    if instance.is_terminal or instance.status == WorkflowStatus.ESCALATED:
        return None

    if definition.max_duration_days is not None and instance.started_at is not None:
        limit = instance.started_at + timedelta(days=definition.max_duration_days)
        if now > limit:
            return f"exceeded max duration of {definition.max_duration_days} days"

    last_activity = instance.last_activity_at
    if definition.escalation_hours is not None and last_activity is not None:
        if now - last_activity > timedelta(hours=definition.escalation_hours):
            return f"no activity for more than {definition.escalation_hours} hours"

    return None
