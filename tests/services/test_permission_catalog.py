"""Tests for PermissionCatalog: role lookup and resolved inheritance."""

import pytest

from governance_kernel.domain.permissions import Permission, Role
from governance_kernel.exceptions import InvalidRoleHierarchyError, RoleNotFoundError
from governance_services.permission_catalog import PermissionCatalog


def perms(*pairs: str) -> tuple[Permission, ...]:
    return tuple(Permission(*p.split(":")) for p in pairs)


class TestDefaultCatalog:

    def test_loads_every_configured_role(self, engine):
        assert set(engine.catalog.role_ids) == {
            "contract_manager",
            "accounting_staff",
            "hr_staff",
            "contract_creator",
            "contract_reviewer",
            "contract_viewer",
        }

    def test_conditional_permission_kept(self, engine):
        hr_perms = engine.catalog.permissions_for("hr_staff")
        approve = next(p for p in hr_perms if p.matches("contract", "approve"))
        assert approve.is_conditional
        assert approve.condition_map == {"type": "employment"}

    def test_require_unknown_role(self, engine):
        with pytest.raises(RoleNotFoundError) as exc_info:
            engine.catalog.require_role("ghost")
        assert exc_info.value.code == "ROLE_NOT_FOUND"

    def test_unknown_role_has_no_permissions(self, engine):
        assert engine.catalog.permissions_for("ghost") == ()
        assert engine.catalog.get_role("ghost") is None
        assert engine.catalog.get_role("hr_staff").name == "HR Staff"
        assert "ghost" not in engine.catalog


class TestInheritance:

    def test_child_carries_parent_permissions(self):
        catalog = PermissionCatalog([
            Role("viewer", "Viewer", perms("contract:read")),
            Role("reviewer", "Reviewer", perms("contract:review"), inherits=("viewer",)),
        ])
        resolved = catalog.permissions_for("reviewer")
        assert [(p.resource, p.action) for p in resolved] == [
            ("contract", "review"),
            ("contract", "read"),
        ]
        # The role value itself still only lists its own permissions.
        assert catalog.require_role("reviewer").permissions == perms("contract:review")

    def test_depth_limit_enforced(self):
        roles = [
            Role("a", "A", inherits=("b",)),
            Role("b", "B", inherits=("c",)),
            Role("c", "C"),
        ]
        PermissionCatalog(roles, inheritance_depth_limit=2)
        with pytest.raises(InvalidRoleHierarchyError):
            PermissionCatalog(roles, inheritance_depth_limit=1)

    def test_duplicate_role_id_rejected(self):
        with pytest.raises(InvalidRoleHierarchyError, match="more than once"):
            PermissionCatalog([Role("a", "A"), Role("a", "A again")])

    def test_len_and_roles(self):
        catalog = PermissionCatalog([Role("a", "A"), Role("b", "B")])
        assert len(catalog) == 2
        assert [r.role_id for r in catalog.roles()] == ["a", "b"]
