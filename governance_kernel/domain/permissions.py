"""
Permission domain types (``governance_kernel.domain.permissions``).

Responsibility
--------------
Pure value objects for role-based authorization: permissions with
optional condition sets, roles (with declared inheritance), role scopes,
and role assignments held by subjects.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or outer layers.

Invariants enforced
-------------------
* Permissions are immutable and only exist inside a ``Role``.
* ``Permission.conditions`` keeps declaration order; condition
  evaluation depends on it.
* ``RoleAssignment.key`` is the uniqueness key
  ``(subject_id, role_id, scope, scope_id)``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class RoleScope(str, Enum):
    """Breadth of a role grant."""

    GLOBAL = "global"
    DEPARTMENT = "department"
    PROJECT = "project"


@dataclass(frozen=True)
class AmountRange:
    """Value of the ``amount`` condition: optional inclusive bounds."""

    min: Decimal | None = None
    max: Decimal | None = None

    @classmethod
    def from_value(cls, value: Any) -> AmountRange:
        """Accept an AmountRange or a ``{"min": .., "max": ..}`` mapping."""
        if isinstance(value, AmountRange):
            return value
        if isinstance(value, Mapping):
            low = value.get("min")
            high = value.get("max")
            return cls(
                min=Decimal(str(low)) if low is not None else None,
                max=Decimal(str(high)) if high is not None else None,
            )
        raise ValueError(f"Cannot build AmountRange from {value!r}")


ConditionPairs = tuple[tuple[str, Any], ...]


def as_condition_pairs(conditions: Mapping[str, Any] | ConditionPairs | None) -> ConditionPairs:
    """Normalize a condition mapping into ordered ``(key, value)`` pairs."""
    if not conditions:
        return ()
    items = conditions.items() if isinstance(conditions, Mapping) else conditions
    pairs: list[tuple[str, Any]] = []
    for key, value in items:
        if key == "amount":
            value = AmountRange.from_value(value)
        pairs.append((str(key), value))
    return tuple(pairs)


@dataclass(frozen=True)
class Permission:
    """A (resource, action) grant, optionally narrowed by a condition set."""

    resource: str
    action: str
    conditions: ConditionPairs = ()

    def matches(self, resource: str, action: str) -> bool:
        return self.resource == resource and self.action == action

    @property
    def is_conditional(self) -> bool:
        return bool(self.conditions)

    @property
    def condition_map(self) -> dict[str, Any]:
        return dict(self.conditions)


@dataclass(frozen=True)
class Role:
    """A named set of permissions.

    ``inherits`` lists parent role ids.  The catalog resolves it
    transitively; a Role on its own only carries its direct permissions.
    """

    role_id: str
    name: str
    permissions: tuple[Permission, ...] = ()
    description: str = ""
    inherits: tuple[str, ...] = ()


@dataclass(frozen=True)
class RoleAssignment:
    """A role granted to a subject within a scope."""

    subject_id: str
    role_id: str
    scope: RoleScope = RoleScope.GLOBAL
    scope_id: str | None = None
    granted_by: str | None = None
    granted_at: datetime | None = None
    expires_at: datetime | None = None

    @property
    def key(self) -> tuple[str, str, RoleScope, str | None]:
        return (self.subject_id, self.role_id, self.scope, self.scope_id)

    def is_expired(self, as_of: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= as_of


def assignment_key(
    subject_id: str,
    role_id: str,
    scope: RoleScope | str | None = None,
    scope_id: str | None = None,
) -> tuple[str, str, RoleScope, str | None]:
    """Build the uniqueness key, defaulting an omitted scope to GLOBAL."""
    return (subject_id, role_id, RoleScope(scope or RoleScope.GLOBAL), scope_id)


@dataclass(frozen=True)
class PermissionCheck:
    """One (resource, action, context) question for any/all checks."""

    resource: str
    action: str
    context: Mapping[str, Any] | None = None
