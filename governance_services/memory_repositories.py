"""
In-memory repository implementations.

Default storage for a process-local engine and for tests.  Same
contracts as the SQL repositories in ``governance_kernel.services``,
including the optimistic version check on workflow instances and the
refusal to rewrite a completed or cancelled instance.
"""

from __future__ import annotations

import threading
from dataclasses import replace

from governance_kernel.domain.permissions import RoleAssignment
from governance_kernel.domain.workflow import WorkflowInstance
from governance_kernel.exceptions import (
    InvalidWorkflowTransitionError,
    OptimisticLockError,
    WorkflowInstanceNotFoundError,
)


class InMemoryRoleAssignmentRepository:
    """Role assignments per subject, in insertion order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_subject: dict[str, list[RoleAssignment]] = {}

    def load_for_subject(self, subject_id: str) -> tuple[RoleAssignment, ...]:
        with self._lock:
            return tuple(self._by_subject.get(subject_id, ()))

    def save(self, assignment: RoleAssignment) -> None:
        with self._lock:
            self._by_subject.setdefault(assignment.subject_id, []).append(assignment)

    def delete(self, assignment: RoleAssignment) -> bool:
        with self._lock:
            current = self._by_subject.get(assignment.subject_id, [])
            kept = [a for a in current if a.key != assignment.key]
            removed = len(kept) != len(current)
            if kept:
                self._by_subject[assignment.subject_id] = kept
            else:
                self._by_subject.pop(assignment.subject_id, None)
            return removed

    def subjects(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._by_subject)


class InMemoryWorkflowInstanceRepository:
    """Workflow instances keyed by instance id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._instances: dict[str, WorkflowInstance] = {}

    def get(self, instance_id: str) -> WorkflowInstance | None:
        with self._lock:
            return self._instances.get(instance_id)

    def add(self, instance: WorkflowInstance) -> WorkflowInstance:
        stored = replace(instance, version=0)
        with self._lock:
            if instance.instance_id in self._instances:
                raise ValueError(f"Workflow instance {instance.instance_id} already exists")
            self._instances[instance.instance_id] = stored
        return stored

    def update(self, instance: WorkflowInstance) -> WorkflowInstance:
        with self._lock:
            current = self._instances.get(instance.instance_id)
            if current is None:
                raise WorkflowInstanceNotFoundError(instance.instance_id)
            if current.is_terminal:
                raise InvalidWorkflowTransitionError(
                    instance.instance_id, current.status.value, instance.status.value,
                )
            if current.version != instance.version:
                raise OptimisticLockError(
                    "WorkflowInstance",
                    instance.instance_id,
                    expected_version=instance.version,
                    actual_version=current.version,
                )
            stored = replace(instance, version=instance.version + 1)
            self._instances[instance.instance_id] = stored
            return stored

    def list(self) -> tuple[WorkflowInstance, ...]:
        with self._lock:
            return tuple(self._instances.values())

    def find_by_document(self, document_id: str) -> WorkflowInstance | None:
        with self._lock:
            matches = [i for i in self._instances.values() if i.document_id == document_id]
        return matches[-1] if matches else None
