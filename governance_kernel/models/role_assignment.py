"""
Module: governance_kernel.models.role_assignment
Responsibility: ORM persistence for role grants.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - UNIQUE(subject_id, role_id, scope, scope_id).  A missing scope_id is
      stored as the empty string so the constraint also covers global
      grants (NULLs never collide in a unique index).

Failure modes:
    - IntegrityError on a duplicate grant that slipped past the store's
      own duplicate check (e.g. a concurrent writer in another process).
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from governance_kernel.db.base import Base
from governance_kernel.models._timestamps import as_utc

if TYPE_CHECKING:
    from governance_kernel.domain.permissions import RoleAssignment


class RoleAssignmentModel(Base):
    """Persistent role grant."""

    __tablename__ = "role_assignments"

    __table_args__ = (
        UniqueConstraint(
            "subject_id", "role_id", "scope", "scope_id",
            name="uq_role_assignments_key",
        ),
        CheckConstraint(
            "scope IN ('global', 'department', 'project')",
            name="ck_role_assignments_valid_scope",
        ),
        Index("ix_role_assignments_subject", "subject_id"),
    )

    subject_id: Mapped[str] = mapped_column(String(200), nullable=False)
    role_id: Mapped[str] = mapped_column(String(100), nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False, default="global")
    scope_id: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    granted_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    granted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<RoleAssignment {self.subject_id} {self.role_id} "
            f"{self.scope}:{self.scope_id or '-'}>"
        )

    def to_dto(self) -> RoleAssignment:
        """Convert ORM model to frozen domain DTO."""
        from governance_kernel.domain.permissions import RoleAssignment, RoleScope

        return RoleAssignment(
            subject_id=self.subject_id,
            role_id=self.role_id,
            scope=RoleScope(self.scope),
            scope_id=self.scope_id or None,
            granted_by=self.granted_by,
            granted_at=as_utc(self.granted_at),
            expires_at=as_utc(self.expires_at),
        )

    @classmethod
    def from_dto(cls, dto: RoleAssignment) -> RoleAssignmentModel:
        """Create ORM model from domain DTO."""
        return cls(
            subject_id=dto.subject_id,
            role_id=dto.role_id,
            scope=dto.scope.value,
            scope_id=dto.scope_id or "",
            granted_by=dto.granted_by,
            granted_at=dto.granted_at,
            expires_at=dto.expires_at,
        )
