"""
governance_engines.progress -- Pure workflow progress and statistics math.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``now`` is always passed
    in by the caller; nothing here reads a clock.

Invariants enforced:
    - progress is ``current / total * 100`` rounded half-up to an int.
    - estimated completion sums estimated_hours of steps 0..current
      inclusive; the current index is capped at the last step so a
      completed instance sums every step.
    - average completion time only counts completed instances that carry
      a completed_at.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from governance_engines.tracer import traced_engine
from governance_kernel.domain.workflow import (
    WorkflowDefinition,
    WorkflowInstance,
    WorkflowProgress,
    WorkflowStatistics,
    WorkflowStatus,
)

_SECONDS_PER_DAY = 86_400


def progress_percent(current_step: int, total_steps: int) -> int:
    """Integer percentage, rounded half-up.  Zero steps means 0%."""
    if total_steps <= 0:
        return 0
    ratio = Decimal(current_step * 100) / Decimal(total_steps)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def estimated_hours_through(definition: WorkflowDefinition, step_index: int) -> float:
    """Sum of estimated hours of steps ``0..step_index`` inclusive."""
    if not definition.steps:
        return 0.0
    last = min(max(step_index, 0), len(definition.steps) - 1)
    return float(sum(
        step.estimated_hours or 0 for step in definition.steps[: last + 1]
    ))


@traced_engine("progress", "1.0", fingerprint_fields=("instance", "now"))
def compute_progress(
    *,
    instance: WorkflowInstance,
    definition: WorkflowDefinition,
    now: datetime,
) -> WorkflowProgress:
    """Progress snapshot for one instance."""
    started = instance.started_at or now
    estimated = started + timedelta(
        hours=estimated_hours_through(definition, instance.current_step_index)
    )
    return WorkflowProgress(
        current_step=instance.current_step_index,
        total_steps=definition.step_count,
        progress=progress_percent(instance.current_step_index, definition.step_count),
        estimated_completion=estimated,
        is_overdue=estimated < now,
    )


@traced_engine("statistics", "1.0")
def compute_statistics(instances: Iterable[WorkflowInstance]) -> WorkflowStatistics:
    """Counts by status and mean completion time in days."""
    counts = {status: 0 for status in WorkflowStatus}
    durations: list[float] = []
    total = 0
    for instance in instances:
        total += 1
        counts[instance.status] += 1
        if (
            instance.status == WorkflowStatus.COMPLETED
            and instance.completed_at is not None
            and instance.started_at is not None
        ):
            elapsed = instance.completed_at - instance.started_at
            durations.append(elapsed.total_seconds() / _SECONDS_PER_DAY)

    average = sum(durations) / len(durations) if durations else 0.0
    return WorkflowStatistics(
        total_instances=total,
        active_instances=counts[WorkflowStatus.ACTIVE],
        completed_instances=counts[WorkflowStatus.COMPLETED],
        cancelled_instances=counts[WorkflowStatus.CANCELLED],
        escalated_instances=counts[WorkflowStatus.ESCALATED],
        average_completion_time=average,
    )
