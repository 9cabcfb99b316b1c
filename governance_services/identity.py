"""
Identity and assignment collaborators.

``StaticIdentityProvider`` maps subject ids to display names from a dict.
The assignment resolvers decide who works a step after an approval
moves an instance forward.
"""

from __future__ import annotations

import threading

from governance_kernel.domain.workflow import WorkflowInstance, WorkflowStepDefinition
from governance_kernel.logging_config import get_logger
from governance_services.role_assignment_store import RoleAssignmentStore

logger = get_logger("services.identity")


class StaticIdentityProvider:
    """Display names backed by a simple dict."""

    def __init__(self, names: dict[str, str] | None = None) -> None:
        self._names: dict[str, str] = dict(names or {})

    def display_name(self, subject_id: str) -> str | None:
        return self._names.get(subject_id)

    def register(self, subject_id: str, name: str) -> None:
        self._names[subject_id] = name


class NullAssignmentResolver:
    """Assigns nobody; records that the step is waiting for a reviewer."""

    def resolve_assignee(
        self,
        step: WorkflowStepDefinition,
        instance: WorkflowInstance,
    ) -> str | None:
        logger.info(
            "auto_assignment_skipped",
            extra={
                "instance_id": instance.instance_id,
                "step_id": step.step_id,
                "required_role": step.required_role,
            },
        )
        return None


class RoleBasedAssignmentResolver:
    """Picks a holder of the step's required role.

    Holders are taken in subject-id order, rotating so consecutive
    assignments of the same role spread across holders.
    """

    def __init__(self, store: RoleAssignmentStore) -> None:
        self._store = store
        self._cursor: dict[str, int] = {}
        self._lock = threading.Lock()

    def resolve_assignee(
        self,
        step: WorkflowStepDefinition,
        instance: WorkflowInstance,
    ) -> str | None:
        holders = sorted(self._store.subjects_with_role(step.required_role))
        if not holders:
            logger.warning(
                "auto_assignment_no_candidate",
                extra={
                    "instance_id": instance.instance_id,
                    "step_id": step.step_id,
                    "required_role": step.required_role,
                },
            )
            return None
        with self._lock:
            position = self._cursor.get(step.required_role, 0) % len(holders)
            self._cursor[step.required_role] = position + 1
        return holders[position]
