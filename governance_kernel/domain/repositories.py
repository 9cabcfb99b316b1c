"""
Collaborator interfaces (``governance_kernel.domain.repositories``).

The services depend on these Protocols only.  In-memory implementations
live in ``governance_services.memory_repositories``; SQLAlchemy ones in
``governance_kernel.services``.

Contract shared by the workflow repositories:
    ``update(instance)`` succeeds only when the stored version equals
    ``instance.version``; it stores and returns the instance with
    ``version + 1``.  Any other stored version raises
    ``OptimisticLockError``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from governance_kernel.domain.permissions import RoleAssignment
from governance_kernel.domain.workflow import (
    WorkflowInstance,
    WorkflowStepDefinition,
)


class IdentityProvider(Protocol):
    """Resolves subject ids to display names for step history."""

    def display_name(self, subject_id: str) -> str | None:
        """Return the display name, or None when the subject is unknown."""
        ...


@runtime_checkable
class RoleAssignmentRepository(Protocol):
    """Storage for granted roles, keyed by subject."""

    def load_for_subject(self, subject_id: str) -> tuple[RoleAssignment, ...]: ...

    def save(self, assignment: RoleAssignment) -> None: ...

    def delete(self, assignment: RoleAssignment) -> bool:
        """Remove the assignment with the same key; True if one existed."""
        ...

    def subjects(self) -> tuple[str, ...]: ...


@runtime_checkable
class WorkflowInstanceRepository(Protocol):
    """Storage for workflow instances with optimistic versioning."""

    def get(self, instance_id: str) -> WorkflowInstance | None: ...

    def add(self, instance: WorkflowInstance) -> WorkflowInstance: ...

    def update(self, instance: WorkflowInstance) -> WorkflowInstance:
        """Version-checked replace.

        Raises:
            WorkflowInstanceNotFoundError: nothing stored under the id.
            OptimisticLockError: stored version differs from instance.version.
            InvalidWorkflowTransitionError: the stored instance is terminal.
        """
        ...

    def list(self) -> tuple[WorkflowInstance, ...]: ...

    def find_by_document(self, document_id: str) -> WorkflowInstance | None: ...


class AssignmentResolver(Protocol):
    """Chooses who works the next step after an approval."""

    def resolve_assignee(
        self,
        step: WorkflowStepDefinition,
        instance: WorkflowInstance,
    ) -> str | None: ...
