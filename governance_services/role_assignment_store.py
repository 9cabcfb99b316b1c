"""
governance_services.role_assignment_store -- Per-subject granted roles.

Responsibility:
    Grant and revoke roles, answer "which roles does this subject hold?",
    and tell subscribers (the permission evaluator's cache) about every
    change.

Invariants enforced:
    - ``(subject_id, role_id, scope, scope_id)`` is unique.  An omitted
      scope means ``global`` in both assign and remove.
    - assign/remove for one subject are serialized (keyed lock), so the
      duplicate check and the write cannot interleave.
    - Every mutation, including a remove that found nothing, notifies
      subscribers and emits an audit event.

Failure modes:
    - DuplicateRoleAssignmentError from assign_role.  Raised, never
      swallowed.
    - remove_role never raises for a missing assignment.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime

from governance_kernel.domain.audit import AuditEvent, AuditSink
from governance_kernel.domain.clock import Clock, SystemClock
from governance_kernel.domain.permissions import (
    RoleAssignment,
    RoleScope,
    assignment_key,
)
from governance_kernel.domain.repositories import RoleAssignmentRepository
from governance_kernel.exceptions import DuplicateRoleAssignmentError
from governance_kernel.logging_config import get_logger
from governance_services.audit import emit_safely
from governance_services.locking import KeyedLock
from governance_services.memory_repositories import InMemoryRoleAssignmentRepository

logger = get_logger("services.role_assignment_store")

AUDIT_RESOURCE = "role_assignment"
SYSTEM_ACTOR = "system"

ChangeListener = Callable[[], None]


class RoleAssignmentStore:
    """Role grants backed by a ``RoleAssignmentRepository``."""

    def __init__(
        self,
        repository: RoleAssignmentRepository | None = None,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        self._repository = repository or InMemoryRoleAssignmentRepository()
        self._clock = clock or SystemClock()
        self._audit_sink = audit_sink
        self._subject_locks = KeyedLock()
        self._listeners: list[ChangeListener] = []
        self._listeners_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> None:
        """Call ``listener()`` after every assign/remove."""
        with self._listeners_lock:
            self._listeners.append(listener)

    def _notify(self) -> None:
        with self._listeners_lock:
            listeners = tuple(self._listeners)
        for listener in listeners:
            listener()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def assign_role(
        self,
        subject_id: str,
        role_id: str,
        scope: RoleScope | str | None = None,
        scope_id: str | None = None,
        *,
        granted_by: str | None = None,
        expires_at: datetime | None = None,
    ) -> RoleAssignment:
        """Grant ``role_id`` to ``subject_id``.

        Raises:
            DuplicateRoleAssignmentError: the same grant already exists.
        """
        key = assignment_key(subject_id, role_id, scope, scope_id)
        with self._subject_locks.hold(subject_id):
            existing = self._repository.load_for_subject(subject_id)
            if any(a.key == key for a in existing):
                logger.warning(
                    "role_assignment_duplicate",
                    extra={
                        "subject_id": subject_id,
                        "role_id": role_id,
                        "scope": key[2].value,
                        "scope_id": scope_id,
                    },
                )
                raise DuplicateRoleAssignmentError(
                    subject_id, role_id, key[2].value, scope_id,
                )

            assignment = RoleAssignment(
                subject_id=subject_id,
                role_id=role_id,
                scope=key[2],
                scope_id=scope_id,
                granted_by=granted_by,
                granted_at=self._clock.now(),
                expires_at=expires_at,
            )
            self._repository.save(assignment)

        logger.info(
            "role_assigned",
            extra={
                "subject_id": subject_id,
                "role_id": role_id,
                "scope": assignment.scope.value,
                "granted_by": granted_by,
            },
        )
        self._notify()
        self._audit(
            actor_id=granted_by,
            action="role_assigned",
            subject_id=subject_id,
            changes={
                "role_id": role_id,
                "scope": assignment.scope.value,
                "scope_id": scope_id,
                "expires_at": expires_at,
            },
        )
        return assignment

    def remove_role(
        self,
        subject_id: str,
        role_id: str,
        scope: RoleScope | str | None = None,
        scope_id: str | None = None,
        *,
        removed_by: str | None = None,
    ) -> bool:
        """Revoke a grant.  Idempotent; returns whether one was removed."""
        key = assignment_key(subject_id, role_id, scope, scope_id)
        target = RoleAssignment(
            subject_id=subject_id, role_id=role_id, scope=key[2], scope_id=scope_id,
        )
        with self._subject_locks.hold(subject_id):
            removed = self._repository.delete(target)

        logger.info(
            "role_removed",
            extra={
                "subject_id": subject_id,
                "role_id": role_id,
                "scope": key[2].value,
                "removed": removed,
            },
        )
        self._notify()
        self._audit(
            actor_id=removed_by,
            action="role_removed",
            subject_id=subject_id,
            changes={
                "role_id": role_id,
                "scope": key[2].value,
                "scope_id": scope_id,
                "removed": removed,
            },
        )
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_roles(self, subject_id: str) -> tuple[RoleAssignment, ...]:
        """Snapshot of the subject's assignments."""
        return self._repository.load_for_subject(subject_id)

    def has_role(
        self,
        subject_id: str,
        role_id: str,
        as_of: datetime | None = None,
    ) -> bool:
        """Whether the subject holds ``role_id`` in any scope.

        With ``as_of`` given, assignments expired at that time are ignored.
        """
        return any(
            a.role_id == role_id and (as_of is None or not a.is_expired(as_of))
            for a in self.get_roles(subject_id)
        )

    def subjects_with_role(self, role_id: str) -> tuple[str, ...]:
        return tuple(
            subject
            for subject in self._repository.subjects()
            if self.has_role(subject, role_id)
        )

    def _audit(
        self,
        *,
        actor_id: str | None,
        action: str,
        subject_id: str,
        changes: dict,
    ) -> None:
        emit_safely(
            self._audit_sink,
            AuditEvent(
                subject_id=actor_id or SYSTEM_ACTOR,
                action=action,
                resource=AUDIT_RESOURCE,
                resource_id=subject_id,
                timestamp=self._clock.now(),
                changes=changes,
            ),
        )
