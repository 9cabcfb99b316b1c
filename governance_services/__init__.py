"""
governance_services -- Package init and public API.

Responsibility:
    Stateful services that compose the pure rule engines
    (governance_engines/) with repositories, locks, audit sinks and the
    clock.  This is the only layer that holds mutable state or reads
    wall-clock time.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        governance_services/ -> governance_engines/  (allowed)
        governance_services/ -> governance_kernel/   (allowed)
        governance_services/ -> governance_config/   (allowed)
        governance_engines/  -> governance_services/ (FORBIDDEN)
        governance_kernel/   -> governance_services/ (FORBIDDEN)

Invariants enforced:
    - DI transparency: all service wiring is centralised in
      ``build_engine``; no service self-constructs another service.
"""

from governance_services.audit import (
    CompositeAuditSink,
    InMemoryAuditSink,
    LoggingAuditSink,
)
from governance_services.contract_permissions import ContractPermissions
from governance_services.engine import GovernanceEngine, build_engine
from governance_services.escalation import EscalationScanner
from governance_services.identity import (
    NullAssignmentResolver,
    RoleBasedAssignmentResolver,
    StaticIdentityProvider,
)
from governance_services.locking import KeyedLock
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

__all__ = [
    "CompositeAuditSink",
    "InMemoryAuditSink",
    "LoggingAuditSink",
    "ContractPermissions",
    "GovernanceEngine",
    "build_engine",
    "EscalationScanner",
    "NullAssignmentResolver",
    "RoleBasedAssignmentResolver",
    "StaticIdentityProvider",
    "KeyedLock",
    "InMemoryRoleAssignmentRepository",
    "InMemoryWorkflowInstanceRepository",
    "PermissionCatalog",
    "PermissionEvaluator",
    "RoleAssignmentStore",
    "StageGateController",
    "WorkflowInstanceManager",
    "LegalReviewAugmentor",
    "WorkflowAugmentor",
    "WorkflowDefinitionRegistry",
]
