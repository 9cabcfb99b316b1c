"""
Workflow domain types (``governance_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the document approval workflow: step and
workflow definitions, workflow instances with their append-only step
history, execution results, progress and statistics snapshots.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``0 <= current_step_index <= len(steps)``; index == len(steps) only
  once the instance is ``completed``.
* ``TERMINAL_WORKFLOW_STATUSES`` (completed, cancelled) accept no
  further transitions.
* ``history`` is append-only; instances are replaced, never edited.
* ``version`` is owned by the repository (optimistic concurrency).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from governance_kernel.domain.permissions import ConditionPairs


class WorkflowStatus(str, Enum):
    """Workflow instance lifecycle states."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ESCALATED = "escalated"


TERMINAL_WORKFLOW_STATUSES: frozenset[WorkflowStatus] = frozenset({
    WorkflowStatus.COMPLETED,
    WorkflowStatus.CANCELLED,
})


class StepAction(str, Enum):
    """Actions recorded in step history."""

    APPROVE = "approve"
    REJECT = "reject"
    REQUEST_CHANGES = "request_changes"
    ASSIGN = "assign"
    COMMENT = "comment"
    ESCALATE = "escalate"

    @classmethod
    def parse(cls, value: StepAction | str) -> StepAction:
        """Parse an action name; accepts ``requestChanges`` as an alias.

        Raises:
            ValueError: unknown action name.
        """
        if isinstance(value, StepAction):
            return value
        return cls(_ACTION_ALIASES.get(value, value))


_ACTION_ALIASES = {"requestChanges": "request_changes"}


@dataclass(frozen=True)
class StepActions:
    """Which actions a step offers to its reviewer."""

    approve: bool = False
    reject: bool = False
    request_changes: bool = False
    assign: bool = False
    comment: bool = False

    def allows(self, action: StepAction) -> bool:
        return bool(getattr(self, action.value, False))


@dataclass(frozen=True)
class WorkflowStepDefinition:
    """One review stage of a workflow template."""

    step_id: str
    name: str
    required_role: str
    required_permissions: tuple[str, ...] = ()
    description: str = ""
    conditions: ConditionPairs = ()
    allowed_actions: StepActions = field(default_factory=StepActions)
    estimated_hours: float | None = None
    optional: bool = False
    skippable: bool = False

    def permission_pairs(self) -> tuple[tuple[str, str], ...]:
        """Split ``"resource:action"`` strings into pairs."""
        pairs = []
        for perm in self.required_permissions:
            resource, _, action = perm.partition(":")
            pairs.append((resource, action))
        return tuple(pairs)


@dataclass(frozen=True)
class WorkflowDefinition:
    """An ordered approval template for one document type."""

    workflow_id: str
    name: str
    document_type: str
    steps: tuple[WorkflowStepDefinition, ...]
    description: str = ""
    max_duration_days: int | None = None
    auto_escalate: bool = False
    escalation_hours: int | None = None

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def step_at(self, index: int) -> WorkflowStepDefinition | None:
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None

    def index_of(self, step_id: str) -> int | None:
        for i, step in enumerate(self.steps):
            if step.step_id == step_id:
                return i
        return None


@dataclass(frozen=True)
class StepHistoryEntry:
    """Record of one action taken on a step. Immutable."""

    step_id: str
    step_name: str
    actor_id: str
    actor_name: str
    action: StepAction
    comment: str | None = None
    timestamp: datetime | None = None


@dataclass(frozen=True)
class WorkflowInstance:
    """One in-flight execution of a workflow definition for a document."""

    instance_id: str
    document_id: str
    workflow_id: str
    current_step_index: int = 0
    status: WorkflowStatus = WorkflowStatus.ACTIVE
    started_at: datetime | None = None
    completed_at: datetime | None = None
    escalated_at: datetime | None = None
    department: str | None = None
    current_assignee: str | None = None
    history: tuple[StepHistoryEntry, ...] = ()
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_WORKFLOW_STATUSES

    @property
    def last_activity_at(self) -> datetime | None:
        """Timestamp of the latest history entry, else ``started_at``."""
        for entry in reversed(self.history):
            if entry.timestamp is not None:
                return entry.timestamp
        return self.started_at


# =========================================================================
# Execution results
# =========================================================================


class ExecutionOutcome(str, Enum):
    """Why a step execution was applied or denied."""

    APPLIED = "applied"
    INSTANCE_NOT_FOUND = "instance_not_found"
    WORKFLOW_NOT_FOUND = "workflow_not_found"
    TERMINAL_INSTANCE = "terminal_instance"
    WRONG_STEP = "wrong_step"
    ROLE_MISSING = "role_missing"
    PERMISSION_DENIED = "permission_denied"
    CONDITION_FAILED = "condition_failed"
    ACTION_NOT_ALLOWED = "action_not_allowed"
    INVALID_ACTION = "invalid_action"


@dataclass(frozen=True)
class StepExecutionResult:
    """Structured result of ``execute_step`` / ``evaluate_step``.

    Truthy exactly when the outcome is ``APPLIED``, so callers that only
    need a yes/no can keep using it as a boolean.
    """

    outcome: ExecutionOutcome
    instance: WorkflowInstance | None = None
    reason: str = ""

    @property
    def success(self) -> bool:
        return self.outcome == ExecutionOutcome.APPLIED

    def __bool__(self) -> bool:
        return self.success


# =========================================================================
# Monitoring snapshots
# =========================================================================


@dataclass(frozen=True)
class WorkflowProgress:
    """Progress of one instance through its steps."""

    current_step: int
    total_steps: int
    progress: int
    estimated_completion: datetime
    is_overdue: bool


@dataclass(frozen=True)
class WorkflowStatistics:
    """Counts by status plus mean completion time in days."""

    total_instances: int
    active_instances: int
    completed_instances: int
    cancelled_instances: int
    escalated_instances: int
    average_completion_time: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_instances": self.total_instances,
            "active_instances": self.active_instances,
            "completed_instances": self.completed_instances,
            "cancelled_instances": self.cancelled_instances,
            "escalated_instances": self.escalated_instances,
            "average_completion_time": self.average_completion_time,
        }
