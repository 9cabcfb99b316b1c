"""
Module: governance_kernel.models.workflow_instance
Responsibility: ORM persistence for workflow instances and their step
    history.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - instance_id is unique; status limited to the WorkflowStatus values.
    - version is the optimistic-concurrency counter.  Only
      SqlWorkflowInstanceRepository.update() changes it, through a
      conditional UPDATE ... WHERE version = :expected.
    - Step history rows are append-only and ordered by ``sequence``;
      UNIQUE(instance_id, sequence).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from governance_kernel.db.base import Base
from governance_kernel.models._timestamps import as_utc

if TYPE_CHECKING:
    from governance_kernel.domain.workflow import StepHistoryEntry, WorkflowInstance


class WorkflowInstanceModel(Base):
    """Persistent workflow instance."""

    __tablename__ = "workflow_instances"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'completed', 'cancelled', 'escalated')",
            name="ck_workflow_instances_valid_status",
        ),
        CheckConstraint(
            "current_step_index >= 0",
            name="ck_workflow_instances_step_index",
        ),
        Index("ix_workflow_instances_document", "document_id"),
        Index("ix_workflow_instances_status", "status"),
    )

    instance_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    document_id: Mapped[str] = mapped_column(String(200), nullable=False)
    workflow_id: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    current_step_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    escalated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    current_assignee: Mapped[str | None] = mapped_column(String(200), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    history: Mapped[list[StepHistoryModel]] = relationship(
        "StepHistoryModel",
        primaryjoin="WorkflowInstanceModel.instance_id == StepHistoryModel.instance_id",
        order_by="StepHistoryModel.sequence",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<WorkflowInstance {self.instance_id} {self.workflow_id} "
            f"step={self.current_step_index} status={self.status} v{self.version}>"
        )

    def to_dto(self) -> WorkflowInstance:
        """Convert ORM model to frozen domain DTO."""
        from governance_kernel.domain.workflow import WorkflowInstance, WorkflowStatus

        return WorkflowInstance(
            instance_id=self.instance_id,
            document_id=self.document_id,
            workflow_id=self.workflow_id,
            department=self.department,
            current_step_index=self.current_step_index,
            status=WorkflowStatus(self.status),
            started_at=as_utc(self.started_at),
            completed_at=as_utc(self.completed_at),
            escalated_at=as_utc(self.escalated_at),
            current_assignee=self.current_assignee,
            history=tuple(h.to_dto() for h in self.history),
            version=self.version,
        )

    @classmethod
    def from_dto(cls, dto: WorkflowInstance) -> WorkflowInstanceModel:
        """Create ORM model (without history rows) from domain DTO."""
        return cls(
            instance_id=dto.instance_id,
            document_id=dto.document_id,
            workflow_id=dto.workflow_id,
            department=dto.department,
            current_step_index=dto.current_step_index,
            status=dto.status.value,
            started_at=dto.started_at,
            completed_at=dto.completed_at,
            escalated_at=dto.escalated_at,
            current_assignee=dto.current_assignee,
            version=dto.version,
        )


class StepHistoryModel(Base):
    """One append-only step history row."""

    __tablename__ = "workflow_step_history"

    __table_args__ = (
        UniqueConstraint(
            "instance_id", "sequence",
            name="uq_workflow_step_history_sequence",
        ),
    )

    instance_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("workflow_instances.instance_id"),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    step_id: Mapped[str] = mapped_column(String(100), nullable=False)
    step_name: Mapped[str] = mapped_column(String(200), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(200), nullable=False)
    actor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    action: Mapped[str] = mapped_column(String(30), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def to_dto(self) -> StepHistoryEntry:
        from governance_kernel.domain.workflow import StepAction, StepHistoryEntry

        return StepHistoryEntry(
            step_id=self.step_id,
            step_name=self.step_name,
            actor_id=self.actor_id,
            actor_name=self.actor_name,
            action=StepAction(self.action),
            comment=self.comment,
            timestamp=as_utc(self.timestamp),
        )

    @classmethod
    def from_dto(
        cls, instance_id: str, sequence: int, dto: StepHistoryEntry,
    ) -> StepHistoryModel:
        return cls(
            instance_id=instance_id,
            sequence=sequence,
            step_id=dto.step_id,
            step_name=dto.step_name,
            actor_id=dto.actor_id,
            actor_name=dto.actor_name,
            action=dto.action.value,
            comment=dto.comment,
            timestamp=dto.timestamp,
        )
