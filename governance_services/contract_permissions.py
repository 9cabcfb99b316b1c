"""
governance_services.contract_permissions -- Named contract-level checks.

Responsibility:
    Turn "may this subject update contract X?" style questions into
    ``PermissionEvaluator.has_permission`` calls with the right resource,
    action and context.

Architecture position:
    Services layer.  Thin facade; every decision, condition and cache hit
    belongs to the evaluator.

Context shape:
    Per-contract checks merge ``contract_id`` under the caller's context,
    so caller keys win.  ``can_create_contract`` supplies ``document_type``,
    the key the ``type`` condition reads.  ``can_manage_templates`` supplies
    no context, so conditional template permissions grant unconditionally.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from governance_services.permission_evaluator import PermissionEvaluator


class ContractPermissions:
    """Contract, template and dashboard checks over a PermissionEvaluator."""

    def __init__(self, evaluator: PermissionEvaluator) -> None:
        self._evaluator = evaluator

    def _contract_check(
        self,
        subject_id: str,
        action: str,
        contract_id: str,
        context: Mapping[str, Any] | None,
    ) -> bool:
        merged = {"contract_id": contract_id, **(context or {})}
        return self._evaluator.has_permission(subject_id, "contract", action, merged)

    def can_create_contract(self, subject_id: str, document_type: str | None = None) -> bool:
        return self._evaluator.has_permission(
            subject_id, "contract", "create", {"document_type": document_type},
        )

    def can_read_contract(
        self, subject_id: str, contract_id: str, context: Mapping[str, Any] | None = None,
    ) -> bool:
        return self._contract_check(subject_id, "read", contract_id, context)

    def can_update_contract(
        self, subject_id: str, contract_id: str, context: Mapping[str, Any] | None = None,
    ) -> bool:
        return self._contract_check(subject_id, "update", contract_id, context)

    def can_delete_contract(
        self, subject_id: str, contract_id: str, context: Mapping[str, Any] | None = None,
    ) -> bool:
        return self._contract_check(subject_id, "delete", contract_id, context)

    def can_approve_contract(
        self, subject_id: str, contract_id: str, context: Mapping[str, Any] | None = None,
    ) -> bool:
        return self._contract_check(subject_id, "approve", contract_id, context)

    def can_reject_contract(
        self, subject_id: str, contract_id: str, context: Mapping[str, Any] | None = None,
    ) -> bool:
        return self._contract_check(subject_id, "reject", contract_id, context)

    def can_export_contract(self, subject_id: str, contract_id: str) -> bool:
        return self._evaluator.has_permission(
            subject_id, "contract", "export", {"contract_id": contract_id},
        )

    def can_manage_templates(self, subject_id: str) -> bool:
        return self._evaluator.has_permission(subject_id, "template", "manage")

    def can_view_dashboard(self, subject_id: str, dashboard_type: str | None = None) -> bool:
        return self._evaluator.has_permission(
            subject_id, "dashboard", "view", {"dashboard_type": dashboard_type},
        )

    def can_view_analytics(self, subject_id: str, analytics_type: str | None = None) -> bool:
        return self._evaluator.has_permission(
            subject_id, "dashboard", "analytics", {"analytics_type": analytics_type},
        )
