"""
SqlWorkflowInstanceRepository -- workflow instances with optimistic versioning.

Responsibility:
    Implements ``WorkflowInstanceRepository`` over the
    ``workflow_instances`` and ``workflow_step_history`` tables.

Invariants enforced:
    - ``update()`` is a conditional ``UPDATE ... WHERE version = :expected``.
      Zero affected rows means another writer (possibly another process)
      got there first and ``OptimisticLockError`` is raised.
    - History is append-only: ``update()`` inserts only the entries past
      the stored row count and never touches existing rows.

Failure modes:
    - WorkflowInstanceNotFoundError from update() on an unknown id.
    - OptimisticLockError from update() on a stale version.
    - InvalidWorkflowTransitionError from update() on a completed or
      cancelled instance; terminal rows are never rewritten.
    - IntegrityError from add() on a duplicate instance_id.
"""

from dataclasses import replace

from sqlalchemy import func, select, update

from governance_kernel.domain.workflow import (
    TERMINAL_WORKFLOW_STATUSES,
    WorkflowInstance,
)
from governance_kernel.exceptions import (
    InvalidWorkflowTransitionError,
    OptimisticLockError,
    WorkflowInstanceNotFoundError,
)
from governance_kernel.logging_config import get_logger
from governance_kernel.models.workflow_instance import (
    StepHistoryModel,
    WorkflowInstanceModel,
)
from governance_kernel.services.base import BaseRepository

logger = get_logger("services.workflow_instance_repository")

_TERMINAL_VALUES = tuple(s.value for s in TERMINAL_WORKFLOW_STATUSES)


class SqlWorkflowInstanceRepository(BaseRepository):
    """Workflow instance storage over a SQLAlchemy session."""

    def _load(self, instance_id: str) -> WorkflowInstanceModel | None:
        return self.session.execute(
            select(WorkflowInstanceModel)
            .where(WorkflowInstanceModel.instance_id == instance_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def get(self, instance_id: str) -> WorkflowInstance | None:
        model = self._load(instance_id)
        return model.to_dto() if model is not None else None

    def add(self, instance: WorkflowInstance) -> WorkflowInstance:
        stored = replace(instance, version=0)
        self.session.add(WorkflowInstanceModel.from_dto(stored))
        self.session.flush()
        self._append_history(stored, already_stored=0)
        logger.debug(
            "workflow_instance_row_inserted",
            extra={"instance_id": instance.instance_id},
        )
        return stored

    def update(self, instance: WorkflowInstance) -> WorkflowInstance:
        result = self.session.execute(
            update(WorkflowInstanceModel)
            .where(
                WorkflowInstanceModel.instance_id == instance.instance_id,
                WorkflowInstanceModel.version == instance.version,
                WorkflowInstanceModel.status.not_in(_TERMINAL_VALUES),
            )
            .values(
                current_step_index=instance.current_step_index,
                status=instance.status.value,
                completed_at=instance.completed_at,
                escalated_at=instance.escalated_at,
                current_assignee=instance.current_assignee,
                department=instance.department,
                version=instance.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = self._load(instance.instance_id)
            if current is None:
                raise WorkflowInstanceNotFoundError(instance.instance_id)
            if current.status in _TERMINAL_VALUES:
                raise InvalidWorkflowTransitionError(
                    instance.instance_id, current.status, instance.status.value,
                )
            raise OptimisticLockError(
                "WorkflowInstance",
                instance.instance_id,
                expected_version=instance.version,
                actual_version=current.version,
            )

        stored_count = self.session.execute(
            select(func.count())
            .select_from(StepHistoryModel)
            .where(StepHistoryModel.instance_id == instance.instance_id)
        ).scalar_one()
        self._append_history(instance, already_stored=stored_count)
        return replace(instance, version=instance.version + 1)

    def list(self) -> tuple[WorkflowInstance, ...]:
        rows = self.session.execute(
            select(WorkflowInstanceModel)
            .order_by(WorkflowInstanceModel.started_at, WorkflowInstanceModel.instance_id)
            .execution_options(populate_existing=True)
        ).scalars()
        return tuple(row.to_dto() for row in rows)

    def find_by_document(self, document_id: str) -> WorkflowInstance | None:
        model = self.session.execute(
            select(WorkflowInstanceModel)
            .where(WorkflowInstanceModel.document_id == document_id)
            .order_by(WorkflowInstanceModel.started_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        return model.to_dto() if model is not None else None

    def _append_history(self, instance: WorkflowInstance, already_stored: int) -> None:
        new_entries = instance.history[already_stored:]
        if not new_entries:
            return
        self.session.add_all([
            StepHistoryModel.from_dto(instance.instance_id, already_stored + offset, entry)
            for offset, entry in enumerate(new_entries)
        ])
        self.session.flush()
