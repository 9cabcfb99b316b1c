"""
governance_services.permission_catalog -- Static table of roles.

Responsibility:
    Holds every ``Role`` by id and answers "which permissions does this
    role carry?", with ``Role.inherits`` resolved transitively.

Invariants enforced:
    - The hierarchy is checked once, at construction: unknown parents,
      cycles and chains deeper than ``inheritance_depth_limit`` raise
      ``InvalidRoleHierarchyError``.
    - Effective permissions are computed once and never change; the
      catalog has no mutation API.
"""

from __future__ import annotations

from collections.abc import Iterable

from governance_engines.role_hierarchy import check_hierarchy, effective_permissions
from governance_kernel.domain.permissions import Permission, Role
from governance_kernel.exceptions import InvalidRoleHierarchyError, RoleNotFoundError
from governance_kernel.logging_config import get_logger

logger = get_logger("services.permission_catalog")


class PermissionCatalog:
    """Immutable role table with resolved inheritance."""

    def __init__(
        self,
        roles: Iterable[Role],
        *,
        inheritance_depth_limit: int = 2,
    ) -> None:
        self._roles: dict[str, Role] = {}
        for role in roles:
            if role.role_id in self._roles:
                raise InvalidRoleHierarchyError(
                    role.role_id, "role id declared more than once",
                )
            self._roles[role.role_id] = role
        check_hierarchy(self._roles, inheritance_depth_limit)
        self._effective: dict[str, tuple[Permission, ...]] = {
            role_id: effective_permissions(role_id, self._roles)
            for role_id in self._roles
        }
        logger.debug(
            "permission_catalog_built",
            extra={"role_count": len(self._roles)},
        )

    def get_role(self, role_id: str) -> Role | None:
        return self._roles.get(role_id)

    def require_role(self, role_id: str) -> Role:
        role = self._roles.get(role_id)
        if role is None:
            raise RoleNotFoundError(role_id)
        return role

    def permissions_for(self, role_id: str) -> tuple[Permission, ...]:
        """Own plus inherited permissions; empty for an unknown role."""
        return self._effective.get(role_id, ())

    def roles(self) -> tuple[Role, ...]:
        return tuple(self._roles.values())

    @property
    def role_ids(self) -> tuple[str, ...]:
        return tuple(self._roles)

    def __contains__(self, role_id: object) -> bool:
        return role_id in self._roles

    def __len__(self) -> int:
        return len(self._roles)
