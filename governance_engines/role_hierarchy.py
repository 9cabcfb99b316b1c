"""
governance_engines.role_hierarchy -- Pure role inheritance resolution.

A role's effective permissions are its own followed by those of every
ancestor reachable through ``Role.inherits``, nearest first, each
ancestor listed once.

Invariants enforced:
    - Every parent id must name a known role.
    - No cycles.
    - The longest parent chain from any role is at most ``depth_limit``
      edges.

Failure modes:
    - InvalidRoleHierarchyError for any violation above.
"""

from __future__ import annotations

from collections.abc import Mapping

from governance_kernel.domain.permissions import Permission, Role
from governance_kernel.exceptions import InvalidRoleHierarchyError


def _depth(
    role_id: str,
    roles: Mapping[str, Role],
    path: tuple[str, ...],
    memo: dict[str, int],
) -> int:
    if role_id in memo:
        return memo[role_id]
    if role_id in path:
        cycle = " -> ".join(path[path.index(role_id):] + (role_id,))
        raise InvalidRoleHierarchyError(path[0], f"inheritance cycle {cycle}")
    role = roles.get(role_id)
    if role is None:
        raise InvalidRoleHierarchyError(path[-1], f"inherits unknown role {role_id}")
    deepest = 0
    for parent in role.inherits:
        deepest = max(deepest, 1 + _depth(parent, roles, path + (role_id,), memo))
    memo[role_id] = deepest
    return deepest


def check_hierarchy(roles: Mapping[str, Role], depth_limit: int) -> None:
    """Raise InvalidRoleHierarchyError unless every role's ancestry is sound."""
    memo: dict[str, int] = {}
    for role_id in roles:
        depth = _depth(role_id, roles, (), memo)
        if depth > depth_limit:
            raise InvalidRoleHierarchyError(
                role_id, f"inheritance depth {depth} exceeds limit {depth_limit}",
            )


def ancestors(role_id: str, roles: Mapping[str, Role]) -> tuple[str, ...]:
    """Breadth-first ancestor ids, nearest first, without repeats."""
    seen: list[str] = []
    frontier = list(roles[role_id].inherits) if role_id in roles else []
    while frontier:
        next_frontier: list[str] = []
        for parent in frontier:
            if parent == role_id or parent in seen or parent not in roles:
                continue
            seen.append(parent)
            next_frontier.extend(roles[parent].inherits)
        frontier = next_frontier
    return tuple(seen)


def effective_permissions(
    role_id: str, roles: Mapping[str, Role],
) -> tuple[Permission, ...]:
    """Own permissions first, then each ancestor's in ancestor order."""
    role = roles.get(role_id)
    if role is None:
        return ()
    perms = list(role.permissions)
    for parent in ancestors(role_id, roles):
        perms.extend(roles[parent].permissions)
    return tuple(perms)
