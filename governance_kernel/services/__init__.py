"""SQLAlchemy-backed repository implementations."""

from governance_kernel.services.role_assignment_repository import (
    SqlRoleAssignmentRepository,
)
from governance_kernel.services.workflow_instance_repository import (
    SqlWorkflowInstanceRepository,
)

__all__ = [
    "SqlRoleAssignmentRepository",
    "SqlWorkflowInstanceRepository",
]
