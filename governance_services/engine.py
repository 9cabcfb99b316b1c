"""
governance_services.engine -- Composition root for the governance services.

Responsibility:
    Creates every service exactly once and wires them together from a
    loaded ``GovernanceConfiguration``.  No service creates other
    services internally; this module is the single point of dependency
    injection.

Architecture position:
    Services -- top of the service layer.  Callers hold the returned
    ``GovernanceEngine``; there are no module-level singletons.

Failure modes:
    - ConfigurationError from ``load_configuration`` when the packaged or
      supplied configuration set is invalid.
    - InvalidRoleHierarchyError / InvalidWorkflowDefinitionError when a
      hand-built configuration bypassed the validator.

Usage:
    from governance_services.engine import build_engine

    engine = build_engine(clock=clock)
    engine.store.assign_role("u1", "contract_manager")
    engine.evaluator.has_permission("u1", "contract", "create")
    engine.contracts.can_update_contract("u1", "c-1", {"owner_id": "u1"})
    instance = engine.workflows.create_instance("doc-1", "standard_contract_approval", "u1")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from governance_config import load_configuration
from governance_config.schema import GovernanceConfiguration
from governance_kernel.domain.audit import AuditSink
from governance_kernel.domain.clock import Clock, SystemClock
from governance_kernel.domain.repositories import (
    AssignmentResolver,
    IdentityProvider,
    RoleAssignmentRepository,
    WorkflowInstanceRepository,
)
from governance_kernel.logging_config import get_logger
from governance_services.audit import LoggingAuditSink
from governance_services.contract_permissions import ContractPermissions
from governance_services.escalation import EscalationScanner
from governance_services.memory_repositories import (
    InMemoryRoleAssignmentRepository,
    InMemoryWorkflowInstanceRepository,
)
from governance_services.permission_catalog import PermissionCatalog
from governance_services.permission_evaluator import PermissionEvaluator
from governance_services.role_assignment_store import RoleAssignmentStore
from governance_services.stage_gate import StageGateController
from governance_services.workflow_instance_manager import WorkflowInstanceManager
from governance_services.workflow_registry import (
    LegalReviewAugmentor,
    WorkflowAugmentor,
    WorkflowDefinitionRegistry,
)
from governance_engines.stage_rules import default_stage_validators

logger = get_logger("services.engine")


@dataclass(frozen=True)
class GovernanceEngine:
    """Every wired service for one configuration set."""

    config: GovernanceConfiguration
    clock: Clock
    catalog: PermissionCatalog
    store: RoleAssignmentStore
    evaluator: PermissionEvaluator
    contracts: ContractPermissions
    registry: WorkflowDefinitionRegistry
    workflows: WorkflowInstanceManager
    scanner: EscalationScanner

    def new_stage_gate(self, initial_draft: Mapping[str, Any] | None = None) -> StageGateController:
        """A fresh drafting gate whose basic-info rule knows the configured document types."""
        document_types = set(self.config.document_types) or None
        validators = (
            default_stage_validators(document_types) if document_types else None
        )
        return StageGateController(
            validators=validators, clock=self.clock, initial_draft=initial_draft,
        )


def build_engine(
    config: GovernanceConfiguration | None = None,
    *,
    clock: Clock | None = None,
    role_repository: RoleAssignmentRepository | None = None,
    instance_repository: WorkflowInstanceRepository | None = None,
    audit_sink: AuditSink | None = None,
    identity: IdentityProvider | None = None,
    assignment_resolver: AssignmentResolver | None = None,
    augmentors: Iterable[WorkflowAugmentor] | None = None,
) -> GovernanceEngine:
    """Build a GovernanceEngine (single entrypoint for production).

    Args:
        config: Loaded configuration; defaults to the packaged default set.
        clock: Optional clock; default SystemClock.
        role_repository: Role assignment storage; default in-memory.
        instance_repository: Workflow instance storage; default in-memory.
        audit_sink: Receives change events; default logs them.
        identity: Resolves actor display names for step history.
        assignment_resolver: Picks who works the next step after an approval.
        augmentors: Department workflow augmentors; default legal review.
    """
    config = config or load_configuration()
    clock = clock or SystemClock()
    settings = config.settings
    audit_sink = audit_sink if audit_sink is not None else LoggingAuditSink()
    instance_repository = instance_repository or InMemoryWorkflowInstanceRepository()

    catalog = PermissionCatalog(
        config.roles,
        inheritance_depth_limit=config.hierarchy_rules.inheritance_depth_limit,
    )
    store = RoleAssignmentStore(
        repository=role_repository or InMemoryRoleAssignmentRepository(),
        clock=clock,
        audit_sink=audit_sink,
    )
    evaluator = PermissionEvaluator(
        catalog,
        store,
        clock,
        condition_mode=settings.condition_mode,
        enforce_expiry=settings.enforce_expiry,
    )
    registry = WorkflowDefinitionRegistry(
        config.workflows,
        document_types=config.document_types,
        augmentors=[LegalReviewAugmentor()] if augmentors is None else augmentors,
    )
    workflows = WorkflowInstanceManager(
        registry,
        evaluator,
        store,
        repository=instance_repository,
        clock=clock,
        audit_sink=audit_sink,
        identity=identity,
        assignment_resolver=assignment_resolver,
        enforce_allowed_actions=settings.enforce_allowed_actions,
        enforce_expiry=settings.enforce_expiry,
        max_retries=settings.max_retries,
    )
    scanner = EscalationScanner(
        workflows,
        instance_repository,
        clock=clock,
        interval_seconds=settings.escalation_interval_seconds,
    )

    logger.info(
        "governance_engine_built",
        extra={
            "config_name": config.name,
            "config_checksum": config.checksum,
            "role_count": len(catalog),
            "workflow_count": len(registry.list()),
            "condition_mode": settings.condition_mode.value,
        },
    )
    return GovernanceEngine(
        config=config,
        clock=clock,
        catalog=catalog,
        store=store,
        evaluator=evaluator,
        contracts=ContractPermissions(evaluator),
        registry=registry,
        workflows=workflows,
        scanner=scanner,
    )
