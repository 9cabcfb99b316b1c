"""
governance_services.permission_evaluator -- "May this subject do this?"

Responsibility:
    Answer ``has_permission(subject, resource, action, context)`` from the
    subject's role assignments and the catalog's resolved permissions,
    caching every answer.

Semantics:
    For each assignment, for each permission of the role matching
    ``(resource, action)``: a permission with conditions is evaluated
    against the context only when a context was supplied (``{}`` counts
    as supplied); otherwise the permission grants.  The first grant wins.

Invariants enforced:
    - Cache key is ``(subject, resource, action, canonical JSON of context)``;
      ``None`` and ``{}`` are distinct keys.
    - The whole cache is cleared on every role change for any subject.
      A result computed across a clear is not stored.
    - With ``enforce_expiry``, expired assignments are skipped and a
      cached result is only reused until the next expiry it depended on.

Failure modes:
    None.  Unknown roles, missing context fields and unknown condition
    keys deny or pass through; nothing raises.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from governance_engines.conditions import ConditionMode, evaluate_conditions
from governance_kernel.domain.clock import Clock, SystemClock
from governance_kernel.domain.permissions import PermissionCheck
from governance_kernel.logging_config import get_logger
from governance_kernel.utils.hashing import canonicalize_json
from governance_services.permission_catalog import PermissionCatalog
from governance_services.role_assignment_store import RoleAssignmentStore

logger = get_logger("services.permission_evaluator")

_CacheKey = tuple[str, str, str, str | None]


class PermissionEvaluator:
    """Cached role-based permission checks with contextual conditions."""

    def __init__(
        self,
        catalog: PermissionCatalog,
        store: RoleAssignmentStore,
        clock: Clock | None = None,
        *,
        condition_mode: ConditionMode = ConditionMode.FIRST_DECISION,
        enforce_expiry: bool = False,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._clock = clock or SystemClock()
        self._condition_mode = condition_mode
        self._enforce_expiry = enforce_expiry

        self._lock = threading.Lock()
        self._cache: dict[_CacheKey, tuple[bool, datetime | None]] = {}
        self._generation = 0
        self._hits = 0
        self._misses = 0

        store.subscribe(self.clear_cache)

    @property
    def condition_mode(self) -> ConditionMode:
        return self._condition_mode

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._generation += 1

    def cache_info(self) -> dict[str, int]:
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._cache),
            }

    @staticmethod
    def _cache_key(
        subject_id: str, resource: str, action: str, context: Mapping[str, Any] | None,
    ) -> _CacheKey | None:
        if context is None:
            return (subject_id, resource, action, None)
        try:
            return (subject_id, resource, action, canonicalize_json(dict(context)))
        except (TypeError, ValueError):
            return None

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def has_permission(
        self,
        subject_id: str,
        resource: str,
        action: str,
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        """Whether ``subject_id`` may perform ``action`` on ``resource``."""
        key = self._cache_key(subject_id, resource, action, context)
        now = self._clock.now() if self._enforce_expiry else None

        with self._lock:
            if key is not None and key in self._cache:
                result, valid_until = self._cache[key]
                if valid_until is None or now is None or now < valid_until:
                    self._hits += 1
                    return result
                del self._cache[key]
            self._misses += 1
            generation = self._generation

        result, valid_until = self._evaluate(subject_id, resource, action, context, now)

        with self._lock:
            if key is not None and generation == self._generation:
                self._cache[key] = (result, valid_until)

        logger.debug(
            "permission_evaluated",
            extra={
                "subject_id": subject_id,
                "resource": resource,
                "permission_action": action,
                "granted": result,
            },
        )
        return result

    def has_any_permission(self, subject_id: str, checks: Iterable[PermissionCheck]) -> bool:
        return any(
            self.has_permission(subject_id, c.resource, c.action, c.context) for c in checks
        )

    def has_all_permissions(self, subject_id: str, checks: Iterable[PermissionCheck]) -> bool:
        return all(
            self.has_permission(subject_id, c.resource, c.action, c.context) for c in checks
        )

    def _evaluate(
        self,
        subject_id: str,
        resource: str,
        action: str,
        context: Mapping[str, Any] | None,
        now: datetime | None,
    ) -> tuple[bool, datetime | None]:
        valid_until: datetime | None = None
        for assignment in self._store.get_roles(subject_id):
            if now is not None:
                if assignment.is_expired(now):
                    continue
                if assignment.expires_at is not None and (
                    valid_until is None or assignment.expires_at < valid_until
                ):
                    valid_until = assignment.expires_at
            for permission in self._catalog.permissions_for(assignment.role_id):
                if not permission.matches(resource, action):
                    continue
                if permission.conditions and context is not None:
                    granted = evaluate_conditions(
                        permission.conditions,
                        subject_id,
                        context,
                        mode=self._condition_mode,
                    )
                else:
                    granted = True
                if granted:
                    return True, valid_until
        return False, valid_until
