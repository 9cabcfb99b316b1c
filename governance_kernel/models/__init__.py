"""ORM models for the governance kernel."""

from governance_kernel.models.role_assignment import RoleAssignmentModel
from governance_kernel.models.workflow_instance import (
    StepHistoryModel,
    WorkflowInstanceModel,
)

__all__ = [
    "RoleAssignmentModel",
    "StepHistoryModel",
    "WorkflowInstanceModel",
]
