"""
governance_services.workflow_instance_manager -- Approval state machine.

Responsibility:
    Create workflow instances for documents, authorize and apply step
    actions, and report progress and statistics.

Architecture position:
    Services layer.  Thin coordinator: authorization goes through
    ``PermissionEvaluator``/``RoleAssignmentStore``, condition and
    progress math through ``governance_engines``, storage through a
    ``WorkflowInstanceRepository``.

Step actions:
    =============== ===================================================
    approve         index += 1; at len(steps) -> completed.  Otherwise
                    active, and the assignment resolver picks who works
                    the next step.
    reject          cancelled (terminal), completed_at = now.
    request_changes index = 0, active.  Sends the document back to the
                    first step.
    assign/comment  history entry only.
    =============== ===================================================

Invariants enforced:
    - Terminal instances (completed, cancelled) accept nothing.
    - A denied call mutates nothing.  Denials are returned as a
      ``StepExecutionResult`` naming the reason, never raised.
    - ``execute_step``/``escalate_instance`` hold a per-instance lock and
      write through the repository's optimistic version check, retrying
      up to ``max_retries`` times with every precondition re-evaluated.
    - Every ``execute_step`` call, denied or applied, emits one audit
      event.  Audit and resolver failures are logged and swallowed.

Failure modes:
    - WorkflowNotFoundError from create_instance / get_workflow_progress.
    - WorkflowInstanceNotFoundError from require_instance /
      get_workflow_progress.
    - OptimisticLockError when retries are exhausted.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any
from uuid import uuid4

from governance_engines.conditions import evaluate_conditions
from governance_engines.progress import compute_progress, compute_statistics
from governance_kernel.domain.audit import AuditEvent, AuditSink
from governance_kernel.domain.clock import Clock, SystemClock
from governance_kernel.domain.repositories import (
    AssignmentResolver,
    IdentityProvider,
    WorkflowInstanceRepository,
)
from governance_kernel.domain.workflow import (
    ExecutionOutcome,
    StepAction,
    StepExecutionResult,
    StepHistoryEntry,
    WorkflowDefinition,
    WorkflowInstance,
    WorkflowProgress,
    WorkflowStatistics,
    WorkflowStatus,
    WorkflowStepDefinition,
)
from governance_kernel.exceptions import (
    InvalidWorkflowTransitionError,
    OptimisticLockError,
    WorkflowInstanceNotFoundError,
    WorkflowNotFoundError,
)
from governance_kernel.logging_config import LogContext, get_logger
from governance_services.audit import emit_safely
from governance_services.identity import NullAssignmentResolver
from governance_services.locking import KeyedLock
from governance_services.memory_repositories import InMemoryWorkflowInstanceRepository
from governance_services.permission_evaluator import PermissionEvaluator
from governance_services.role_assignment_store import RoleAssignmentStore
from governance_services.workflow_registry import WorkflowDefinitionRegistry

logger = get_logger("services.workflow_instance_manager")

TRACE_TYPE_WORKFLOW_STEP = "WORKFLOW_STEP"
AUDIT_RESOURCE = "workflow_instance"
SYSTEM_ACTOR = "system"
UNKNOWN_ACTOR_NAME = "Unknown"


def _default_instance_id(document_id: str) -> str:
    return f"wf_{document_id}_{uuid4().hex[:12]}"


class WorkflowInstanceManager:
    """Creates and advances workflow instances."""

    def __init__(
        self,
        registry: WorkflowDefinitionRegistry,
        evaluator: PermissionEvaluator,
        store: RoleAssignmentStore,
        repository: WorkflowInstanceRepository | None = None,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
        identity: IdentityProvider | None = None,
        assignment_resolver: AssignmentResolver | None = None,
        *,
        enforce_allowed_actions: bool = False,
        enforce_expiry: bool = False,
        max_retries: int = 3,
        instance_id_factory: Callable[[str], str] | None = None,
    ) -> None:
        self._registry = registry
        self._evaluator = evaluator
        self._store = store
        self._repository = repository or InMemoryWorkflowInstanceRepository()
        self._clock = clock or SystemClock()
        self._audit_sink = audit_sink
        self._identity = identity
        self._resolver = assignment_resolver or NullAssignmentResolver()
        self._enforce_allowed_actions = enforce_allowed_actions
        self._enforce_expiry = enforce_expiry
        self._max_retries = max(1, max_retries)
        self._new_instance_id = instance_id_factory or _default_instance_id
        self._instance_locks = KeyedLock()

    @property
    def repository(self) -> WorkflowInstanceRepository:
        return self._repository

    # ------------------------------------------------------------------
    # Creation and lookup
    # ------------------------------------------------------------------

    def create_instance(
        self,
        document_id: str,
        workflow_id: str,
        actor_id: str,
        *,
        department: str | None = None,
    ) -> WorkflowInstance:
        """Start ``workflow_id`` for ``document_id`` at its first step.

        Raises:
            WorkflowNotFoundError: unknown workflow id.
        """
        self._registry.require(workflow_id, department)
        now = self._clock.now()
        instance = self._repository.add(
            WorkflowInstance(
                instance_id=self._new_instance_id(document_id),
                document_id=document_id,
                workflow_id=workflow_id,
                department=department,
                current_step_index=0,
                status=WorkflowStatus.ACTIVE,
                started_at=now,
            )
        )
        logger.info(
            "workflow_instance_created",
            extra={
                "instance_id": instance.instance_id,
                "document_id": document_id,
                "workflow_id": workflow_id,
                "actor_id": actor_id,
                "department": department,
            },
        )
        self._audit(
            actor_id=actor_id,
            action="workflow_instance_created",
            instance_id=instance.instance_id,
            changes={
                "document_id": document_id,
                "workflow_id": workflow_id,
                "department": department,
            },
        )
        return instance

    def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        return self._repository.get(instance_id)

    def require_instance(self, instance_id: str) -> WorkflowInstance:
        instance = self._repository.get(instance_id)
        if instance is None:
            raise WorkflowInstanceNotFoundError(instance_id)
        return instance

    def get_instance_by_document(self, document_id: str) -> WorkflowInstance | None:
        return self._repository.find_by_document(document_id)

    def list_instances(self) -> tuple[WorkflowInstance, ...]:
        return self._repository.list()

    def definition_for(self, instance: WorkflowInstance) -> WorkflowDefinition | None:
        """The definition an instance runs, tailored to its department."""
        return self._registry.get(instance.workflow_id, instance.department)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def can_execute_step(
        self,
        instance_id: str,
        step_id: str,
        actor_id: str,
        context: Mapping[str, Any] | None = None,
    ) -> bool:
        return bool(self.evaluate_step(instance_id, step_id, actor_id, context=context))

    def evaluate_step(
        self,
        instance_id: str,
        step_id: str,
        actor_id: str,
        action: StepAction | str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> StepExecutionResult:
        """Structured authorization check without side effects.

        ``APPLIED`` here means the step may be executed.
        """
        parsed: StepAction | None = None
        if action is not None:
            try:
                parsed = StepAction.parse(action)
            except ValueError:
                return StepExecutionResult(
                    ExecutionOutcome.INVALID_ACTION, reason=f"Unknown action {action!r}",
                )
        instance = self._repository.get(instance_id)
        result, _ = self._check(instance, instance_id, step_id, actor_id, parsed, context)
        return result

    def _check(
        self,
        instance: WorkflowInstance | None,
        instance_id: str,
        step_id: str,
        actor_id: str,
        action: StepAction | None,
        context: Mapping[str, Any] | None,
    ) -> tuple[StepExecutionResult, tuple[WorkflowDefinition, WorkflowStepDefinition] | None]:
        if instance is None:
            return StepExecutionResult(
                ExecutionOutcome.INSTANCE_NOT_FOUND,
                reason=f"Workflow instance {instance_id} not found",
            ), None

        definition = self.definition_for(instance)
        if definition is None:
            return StepExecutionResult(
                ExecutionOutcome.WORKFLOW_NOT_FOUND,
                instance=instance,
                reason=f"Workflow {instance.workflow_id} not found",
            ), None

        if instance.is_terminal:
            return StepExecutionResult(
                ExecutionOutcome.TERMINAL_INSTANCE,
                instance=instance,
                reason=f"Instance is {instance.status.value}",
            ), None

        step = definition.step_at(instance.current_step_index)
        if step is None or step.step_id != step_id:
            current = step.step_id if step is not None else None
            return StepExecutionResult(
                ExecutionOutcome.WRONG_STEP,
                instance=instance,
                reason=f"Current step is {current}, not {step_id}",
            ), None

        as_of = self._clock.now() if self._enforce_expiry else None
        if not self._store.has_role(actor_id, step.required_role, as_of=as_of):
            return StepExecutionResult(
                ExecutionOutcome.ROLE_MISSING,
                instance=instance,
                reason=f"Actor lacks role {step.required_role}",
            ), None

        for resource, perm_action in step.permission_pairs():
            if not self._evaluator.has_permission(actor_id, resource, perm_action, context):
                return StepExecutionResult(
                    ExecutionOutcome.PERMISSION_DENIED,
                    instance=instance,
                    reason=f"Permission denied: {resource}:{perm_action}",
                ), None

        if context is not None and step.conditions:
            if not evaluate_conditions(
                step.conditions, actor_id, context, mode=self._evaluator.condition_mode,
            ):
                return StepExecutionResult(
                    ExecutionOutcome.CONDITION_FAILED,
                    instance=instance,
                    reason=f"Step conditions not met for {step.step_id}",
                ), None

        if action is not None:
            if action == StepAction.ESCALATE:
                return StepExecutionResult(
                    ExecutionOutcome.INVALID_ACTION,
                    instance=instance,
                    reason="Escalation is applied by the escalation scanner only",
                ), None
            if self._enforce_allowed_actions and not step.allowed_actions.allows(action):
                return StepExecutionResult(
                    ExecutionOutcome.ACTION_NOT_ALLOWED,
                    instance=instance,
                    reason=f"Step {step.step_id} does not offer {action.value}",
                ), None

        return StepExecutionResult(
            ExecutionOutcome.APPLIED, instance=instance, reason="permitted",
        ), (definition, step)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute_step(
        self,
        instance_id: str,
        step_id: str,
        actor_id: str,
        action: StepAction | str,
        comment: str | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> StepExecutionResult:
        """Authorize and apply ``action`` on the current step.

        Returns a falsy result naming the reason when denied.

        Raises:
            OptimisticLockError: concurrent writers won every retry.
        """
        t0 = time.monotonic()
        before = self._repository.get(instance_id)

        with LogContext.bind(actor_id=actor_id, instance_id=instance_id):
            try:
                parsed = StepAction.parse(action)
            except ValueError:
                result = StepExecutionResult(
                    ExecutionOutcome.INVALID_ACTION,
                    instance=before,
                    reason=f"Unknown action {action!r}",
                )
                self._record_step(
                    result, instance_id, before, step_id, actor_id, str(action), comment, t0,
                )
                return result

            def transition(current: WorkflowInstance | None) -> StepExecutionResult:
                checked, resolved = self._check(
                    current, instance_id, step_id, actor_id, parsed, context,
                )
                if resolved is None or current is None:
                    return checked
                definition, step = resolved
                return StepExecutionResult(
                    ExecutionOutcome.APPLIED,
                    instance=self._apply(current, definition, step, actor_id, parsed, comment),
                    reason=f"{parsed.value} applied",
                )

            try:
                with self._instance_locks.hold(instance_id):
                    result = self._write_with_retry(instance_id, transition)
            except OptimisticLockError as exc:
                self._audit(
                    actor_id=actor_id,
                    action="workflow_step_executed",
                    instance_id=instance_id,
                    changes={
                        "step_id": step_id,
                        "step_action": parsed.value,
                        "outcome": "version_conflict",
                        "reason": str(exc),
                    },
                )
                raise

            self._record_step(
                result, instance_id, before, step_id, actor_id, parsed.value, comment, t0,
            )
            return result

    def _apply(
        self,
        instance: WorkflowInstance,
        definition: WorkflowDefinition,
        step: WorkflowStepDefinition,
        actor_id: str,
        action: StepAction,
        comment: str | None,
    ) -> WorkflowInstance:
        now = self._clock.now()
        entry = StepHistoryEntry(
            step_id=step.step_id,
            step_name=step.name,
            actor_id=actor_id,
            actor_name=self._display_name(actor_id),
            action=action,
            comment=comment,
            timestamp=now,
        )
        updated = replace(instance, history=instance.history + (entry,))

        if action == StepAction.APPROVE:
            next_index = instance.current_step_index + 1
            if next_index >= definition.step_count:
                return replace(
                    updated,
                    current_step_index=definition.step_count,
                    status=WorkflowStatus.COMPLETED,
                    completed_at=now,
                    current_assignee=None,
                )
            updated = replace(
                updated,
                current_step_index=next_index,
                status=WorkflowStatus.ACTIVE,
            )
            next_step = definition.steps[next_index]
            return replace(updated, current_assignee=self._resolve_assignee(next_step, updated))

        if action == StepAction.REJECT:
            return replace(updated, status=WorkflowStatus.CANCELLED, completed_at=now)

        if action == StepAction.REQUEST_CHANGES:
            return replace(updated, current_step_index=0, status=WorkflowStatus.ACTIVE)

        return updated

    def _write_with_retry(
        self,
        instance_id: str,
        transition: Callable[[WorkflowInstance | None], StepExecutionResult],
    ) -> StepExecutionResult:
        """Load, decide, write; on a version conflict start over."""
        for attempt in range(1, self._max_retries + 1):
            result = transition(self._repository.get(instance_id))
            if not result or result.instance is None:
                return result
            try:
                stored = self._repository.update(result.instance)
            except InvalidWorkflowTransitionError:
                # Another writer finished the instance; report the terminal state.
                return transition(self._repository.get(instance_id))
            except OptimisticLockError as exc:
                logger.warning(
                    "workflow_instance_version_conflict",
                    extra={
                        "instance_id": instance_id,
                        "attempt": attempt,
                        "max_retries": self._max_retries,
                        "expected_version": exc.expected_version,
                        "actual_version": exc.actual_version,
                    },
                )
                if attempt >= self._max_retries:
                    raise
                continue
            return replace(result, instance=stored)
        raise AssertionError("unreachable")

    def _resolve_assignee(
        self, step: WorkflowStepDefinition, instance: WorkflowInstance,
    ) -> str | None:
        try:
            return self._resolver.resolve_assignee(step, instance)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "assignment_resolver_failed",
                extra={
                    "instance_id": instance.instance_id,
                    "step_id": step.step_id,
                    "error": str(exc),
                },
            )
            return None

    def _display_name(self, actor_id: str) -> str:
        if self._identity is None:
            return UNKNOWN_ACTOR_NAME
        try:
            return self._identity.display_name(actor_id) or UNKNOWN_ACTOR_NAME
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "identity_lookup_failed",
                extra={"subject_id": actor_id, "error": str(exc)},
            )
            return UNKNOWN_ACTOR_NAME

    # ------------------------------------------------------------------
    # Escalation
    # ------------------------------------------------------------------

    def escalate_instance(self, instance_id: str, reason: str) -> StepExecutionResult:
        """Flag a running instance as escalated.

        Only non-terminal instances that are not already escalated change;
        the history entry is written by the ``system`` actor.
        """

        def transition(current: WorkflowInstance | None) -> StepExecutionResult:
            if current is None:
                return StepExecutionResult(
                    ExecutionOutcome.INSTANCE_NOT_FOUND,
                    reason=f"Workflow instance {instance_id} not found",
                )
            if current.is_terminal:
                return StepExecutionResult(
                    ExecutionOutcome.TERMINAL_INSTANCE,
                    instance=current,
                    reason=f"Instance is {current.status.value}",
                )
            if current.status == WorkflowStatus.ESCALATED:
                return StepExecutionResult(
                    ExecutionOutcome.INVALID_ACTION,
                    instance=current,
                    reason="Instance is already escalated",
                )
            definition = self.definition_for(current)
            step = definition.step_at(current.current_step_index) if definition else None
            now = self._clock.now()
            entry = StepHistoryEntry(
                step_id=step.step_id if step else "",
                step_name=step.name if step else "",
                actor_id=SYSTEM_ACTOR,
                actor_name="System",
                action=StepAction.ESCALATE,
                comment=reason,
                timestamp=now,
            )
            return StepExecutionResult(
                ExecutionOutcome.APPLIED,
                instance=replace(
                    current,
                    status=WorkflowStatus.ESCALATED,
                    escalated_at=now,
                    history=current.history + (entry,),
                ),
                reason=reason,
            )

        with LogContext.bind(actor_id=SYSTEM_ACTOR, instance_id=instance_id):
            with self._instance_locks.hold(instance_id):
                result = self._write_with_retry(instance_id, transition)

            if result:
                logger.warning("workflow_instance_escalated", extra={"reason": reason})
                self._audit(
                    actor_id=SYSTEM_ACTOR,
                    action="workflow_instance_escalated",
                    instance_id=instance_id,
                    changes={"reason": reason},
                )
        return result

    # ------------------------------------------------------------------
    # Monitoring
    # ------------------------------------------------------------------

    def get_workflow_progress(self, instance_id: str) -> WorkflowProgress:
        """
        Raises:
            WorkflowInstanceNotFoundError: unknown instance.
            WorkflowNotFoundError: the instance's workflow is gone.
        """
        instance = self.require_instance(instance_id)
        definition = self.definition_for(instance)
        if definition is None:
            raise WorkflowNotFoundError(instance.workflow_id)
        return compute_progress(
            instance=instance, definition=definition, now=self._clock.now(),
        )

    def get_statistics(self) -> WorkflowStatistics:
        return compute_statistics(self._repository.list())

    # ------------------------------------------------------------------
    # Trace and audit
    # ------------------------------------------------------------------

    def _record_step(
        self,
        result: StepExecutionResult,
        instance_id: str,
        before: WorkflowInstance | None,
        step_id: str,
        actor_id: str,
        action: str,
        comment: str | None,
        t0: float,
    ) -> None:
        after = result.instance
        record: dict[str, Any] = {
            "trace_type": TRACE_TYPE_WORKFLOW_STEP,
            "workflow_id": before.workflow_id if before else None,
            "step_id": step_id,
            "step_action": action,
            "outcome": result.outcome.value,
            "reason": result.reason,
            "from_step_index": before.current_step_index if before else None,
            "to_step_index": after.current_step_index if after else None,
            "from_status": before.status.value if before else None,
            "to_status": after.status.value if after else None,
            "duration_ms": round((time.monotonic() - t0) * 1000, 3),
        }
        if result:
            logger.info("workflow_step_executed", extra=record)
        else:
            logger.info("workflow_step_denied", extra=record)

        changes = {k: v for k, v in record.items() if k not in ("trace_type", "duration_ms")}
        changes["comment"] = comment
        self._audit(
            actor_id=actor_id,
            action="workflow_step_executed",
            instance_id=instance_id,
            changes=changes,
        )

    def _audit(
        self,
        *,
        actor_id: str,
        action: str,
        instance_id: str,
        changes: dict[str, Any],
    ) -> None:
        emit_safely(
            self._audit_sink,
            AuditEvent(
                subject_id=actor_id,
                action=action,
                resource=AUDIT_RESOURCE,
                resource_id=instance_id,
                timestamp=self._clock.now(),
                changes=changes,
            ),
        )
