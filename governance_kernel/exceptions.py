"""
Typed Exception Hierarchy for the Governance Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the authorization and workflow engine must be able to tell a
fault apart from an expected denial.  Denials ("subject may not approve",
"not the current step") are VALUES: ``False`` or a ``StepExecutionResult``.
Faults are exceptions, and every fault has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA as attributes (not just a message string)

Example:
    try:
        store.assign_role("u-1", "contract_reviewer")
    except DuplicateRoleAssignmentError as e:
        api_response(code=e.code, subject=e.subject_id, role=e.role_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    GovernanceKernelError (base)
    |
    +-- RoleError
    |   +-- DuplicateRoleAssignmentError
    |   +-- RoleNotFoundError
    |
    +-- WorkflowError
    |   +-- WorkflowNotFoundError
    |   +-- WorkflowInstanceNotFoundError
    |   +-- InvalidWorkflowTransitionError
    |
    +-- ConcurrencyError
    |   +-- OptimisticLockError
    |
    +-- ConfigurationError
        +-- InvalidRoleHierarchyError
        +-- InvalidWorkflowDefinitionError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|-----------------------------------
Role          | DUPLICATE_ROLE_ASSIGNMENT     | Same (subject, role, scope, scope_id)
              | ROLE_NOT_FOUND                | Role id not in the catalog
--------------|-------------------------------|-----------------------------------
Workflow      | WORKFLOW_NOT_FOUND            | Workflow id not registered
              | WORKFLOW_INSTANCE_NOT_FOUND   | Instance id not stored
              | INVALID_WORKFLOW_TRANSITION   | Rewriting a terminal instance
--------------|-------------------------------|-----------------------------------
Concurrency   | OPTIMISTIC_LOCK_CONFLICT      | Instance version changed underneath
--------------|-------------------------------|-----------------------------------
Configuration | INVALID_ROLE_HIERARCHY        | Unknown parent, cycle, depth limit
              | INVALID_WORKFLOW_DEFINITION   | Bad step role / permission string

===============================================================================
"""


class GovernanceKernelError(Exception):
    """
    Base exception for all governance kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "GOVERNANCE_KERNEL_ERROR"


# Role-related exceptions


class RoleError(GovernanceKernelError):
    """Base exception for role catalog and assignment errors."""

    code: str = "ROLE_ERROR"


class DuplicateRoleAssignmentError(RoleError):
    """The subject already holds this role in this scope."""

    code: str = "DUPLICATE_ROLE_ASSIGNMENT"

    def __init__(
        self,
        subject_id: str,
        role_id: str,
        scope: str,
        scope_id: str | None = None,
    ):
        self.subject_id = subject_id
        self.role_id = role_id
        self.scope = scope
        self.scope_id = scope_id
        super().__init__(
            f"Role {role_id} already assigned to {subject_id} "
            f"(scope={scope}, scope_id={scope_id})"
        )


class RoleNotFoundError(RoleError):
    """Role with given ID is not in the permission catalog."""

    code: str = "ROLE_NOT_FOUND"

    def __init__(self, role_id: str):
        self.role_id = role_id
        super().__init__(f"Role not found: {role_id}")


# Workflow-related exceptions


class WorkflowError(GovernanceKernelError):
    """Base exception for workflow definition and instance errors."""

    code: str = "WORKFLOW_ERROR"


class WorkflowNotFoundError(WorkflowError):
    """Workflow definition with given ID is not registered."""

    code: str = "WORKFLOW_NOT_FOUND"

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow {workflow_id} not found")


class WorkflowInstanceNotFoundError(WorkflowError):
    """Workflow instance with given ID does not exist."""

    code: str = "WORKFLOW_INSTANCE_NOT_FOUND"

    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(f"Workflow instance not found: {instance_id}")


class InvalidWorkflowTransitionError(WorkflowError):
    """A lifecycle transition was requested from a state that forbids it."""

    code: str = "INVALID_WORKFLOW_TRANSITION"

    def __init__(self, instance_id: str, from_status: str, to_status: str):
        self.instance_id = instance_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move workflow instance {instance_id} "
            f"from {from_status} to {to_status}"
        )


# Concurrency-related exceptions


class ConcurrencyError(GovernanceKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Optimistic locking conflict detected."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Configuration-related exceptions


class ConfigurationError(GovernanceKernelError):
    """Base exception for invalid role/workflow configuration."""

    code: str = "CONFIGURATION_ERROR"


class InvalidRoleHierarchyError(ConfigurationError):
    """Role inheritance references an unknown role, cycles, or is too deep."""

    code: str = "INVALID_ROLE_HIERARCHY"

    def __init__(self, role_id: str, reason: str):
        self.role_id = role_id
        self.reason = reason
        super().__init__(f"Invalid role hierarchy at {role_id}: {reason}")


class InvalidWorkflowDefinitionError(ConfigurationError):
    """A workflow definition failed structural validation."""

    code: str = "INVALID_WORKFLOW_DEFINITION"

    def __init__(self, workflow_id: str, reason: str):
        self.workflow_id = workflow_id
        self.reason = reason
        super().__init__(f"Invalid workflow definition {workflow_id}: {reason}")
