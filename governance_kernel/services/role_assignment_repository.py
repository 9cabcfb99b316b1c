"""
SqlRoleAssignmentRepository -- role grants in the ``role_assignments`` table.

Implements ``RoleAssignmentRepository``.  Flush-only; see BaseRepository.
"""

from sqlalchemy import delete, select

from governance_kernel.domain.permissions import RoleAssignment
from governance_kernel.logging_config import get_logger
from governance_kernel.models.role_assignment import RoleAssignmentModel
from governance_kernel.services.base import BaseRepository

logger = get_logger("services.role_assignment_repository")


class SqlRoleAssignmentRepository(BaseRepository):
    """Role assignment storage over a SQLAlchemy session."""

    def load_for_subject(self, subject_id: str) -> tuple[RoleAssignment, ...]:
        rows = self.session.execute(
            select(RoleAssignmentModel)
            .where(RoleAssignmentModel.subject_id == subject_id)
            .order_by(RoleAssignmentModel.granted_at, RoleAssignmentModel.role_id)
        ).scalars()
        return tuple(row.to_dto() for row in rows)

    def save(self, assignment: RoleAssignment) -> None:
        self.session.add(RoleAssignmentModel.from_dto(assignment))
        self.session.flush()

    def delete(self, assignment: RoleAssignment) -> bool:
        result = self.session.execute(
            delete(RoleAssignmentModel).where(
                RoleAssignmentModel.subject_id == assignment.subject_id,
                RoleAssignmentModel.role_id == assignment.role_id,
                RoleAssignmentModel.scope == assignment.scope.value,
                RoleAssignmentModel.scope_id == (assignment.scope_id or ""),
            )
        )
        self.session.flush()
        removed = result.rowcount > 0
        if removed:
            logger.debug(
                "role_assignment_row_deleted",
                extra={
                    "subject_id": assignment.subject_id,
                    "role_id": assignment.role_id,
                },
            )
        return removed

    def subjects(self) -> tuple[str, ...]:
        rows = self.session.execute(
            select(RoleAssignmentModel.subject_id)
            .distinct()
            .order_by(RoleAssignmentModel.subject_id)
        ).scalars()
        return tuple(rows)
