"""
Pure domain layer.

Immutable value objects and collaborator Protocols with NO dependencies
on the ORM, the database or any I/O.  Time is read only through a
``Clock``.
"""

from governance_kernel.domain.audit import AuditEvent, AuditSink
from governance_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from governance_kernel.domain.drafting import (
    STAGE_ORDER,
    DraftingStage,
    StageCheck,
    StageStatus,
    StageValidation,
)
from governance_kernel.domain.permissions import (
    AmountRange,
    Permission,
    PermissionCheck,
    Role,
    RoleAssignment,
    RoleScope,
    as_condition_pairs,
    assignment_key,
)
from governance_kernel.domain.repositories import (
    AssignmentResolver,
    IdentityProvider,
    RoleAssignmentRepository,
    WorkflowInstanceRepository,
)
from governance_kernel.domain.workflow import (
    TERMINAL_WORKFLOW_STATUSES,
    ExecutionOutcome,
    StepAction,
    StepActions,
    StepExecutionResult,
    StepHistoryEntry,
    WorkflowDefinition,
    WorkflowInstance,
    WorkflowProgress,
    WorkflowStatistics,
    WorkflowStatus,
    WorkflowStepDefinition,
)

__all__ = [
    # Audit
    "AuditEvent",
    "AuditSink",
    # Time
    "Clock",
    "DeterministicClock",
    "SystemClock",
    # Drafting
    "STAGE_ORDER",
    "DraftingStage",
    "StageCheck",
    "StageStatus",
    "StageValidation",
    # Permissions
    "AmountRange",
    "Permission",
    "PermissionCheck",
    "Role",
    "RoleAssignment",
    "RoleScope",
    "as_condition_pairs",
    "assignment_key",
    # Collaborators
    "AssignmentResolver",
    "IdentityProvider",
    "RoleAssignmentRepository",
    "WorkflowInstanceRepository",
    # Workflow
    "TERMINAL_WORKFLOW_STATUSES",
    "ExecutionOutcome",
    "StepAction",
    "StepActions",
    "StepExecutionResult",
    "StepHistoryEntry",
    "WorkflowDefinition",
    "WorkflowInstance",
    "WorkflowProgress",
    "WorkflowStatistics",
    "WorkflowStatus",
    "WorkflowStepDefinition",
]
