"""
governance_services.workflow_registry -- Catalog of workflow templates.

Responsibility:
    Look up ``WorkflowDefinition`` by id or by document type, optionally
    tailored to a department by registered augmentors.

Invariants enforced:
    - Definitions are fixed at construction; there is no mutation API.
    - Workflow ids are unique and every definition has at least one step
      (``InvalidWorkflowDefinitionError`` otherwise).
    - Augmentors never see or change the stored definition; they return
      a new one.  An augmentor that raises is logged and skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Protocol

from governance_kernel.domain.workflow import (
    StepActions,
    WorkflowDefinition,
    WorkflowStepDefinition,
)
from governance_kernel.exceptions import (
    InvalidWorkflowDefinitionError,
    WorkflowNotFoundError,
)
from governance_kernel.logging_config import get_logger

logger = get_logger("services.workflow_registry")


class WorkflowAugmentor(Protocol):
    """Tailors a definition for one department."""

    def applies_to(self, department: str) -> bool: ...

    def augment(self, definition: WorkflowDefinition) -> WorkflowDefinition: ...


class LegalReviewAugmentor:
    """Legal department documents always pass a legal review before the last step."""

    STEP_ID = "legal_review"

    def __init__(
        self,
        department: str = "LEGAL",
        required_role: str = "contract_reviewer",
        required_permissions: tuple[str, ...] = ("contract:review", "contract:approve"),
        estimated_hours: float | None = 16,
    ) -> None:
        self._department = department
        self._step = WorkflowStepDefinition(
            step_id=self.STEP_ID,
            name="Legal Review",
            description="Legal reviews compliance",
            required_role=required_role,
            required_permissions=required_permissions,
            conditions=(("department", department),),
            allowed_actions=StepActions(
                approve=True, reject=True, request_changes=True, comment=True,
            ),
            estimated_hours=estimated_hours,
        )

    def applies_to(self, department: str) -> bool:
        return department == self._department

    def augment(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        if definition.index_of(self.STEP_ID) is not None or not definition.steps:
            return definition
        steps = definition.steps[:-1] + (self._step,) + definition.steps[-1:]
        return replace(definition, steps=steps)


class WorkflowDefinitionRegistry:
    """Read-only lookup of workflow definitions."""

    def __init__(
        self,
        definitions: Iterable[WorkflowDefinition],
        document_types: Mapping[str, str] | None = None,
        augmentors: Iterable[WorkflowAugmentor] = (),
    ) -> None:
        self._definitions: dict[str, WorkflowDefinition] = {}
        for definition in definitions:
            if definition.workflow_id in self._definitions:
                raise InvalidWorkflowDefinitionError(
                    definition.workflow_id, "workflow id declared more than once",
                )
            if not definition.steps:
                raise InvalidWorkflowDefinitionError(
                    definition.workflow_id, "workflow has no steps",
                )
            self._definitions[definition.workflow_id] = definition
        self._document_types = dict(document_types or {})
        self._augmentors = tuple(augmentors)

    def get(
        self, workflow_id: str, department: str | None = None,
    ) -> WorkflowDefinition | None:
        definition = self._definitions.get(workflow_id)
        if definition is None or department is None:
            return definition
        return self._augment(definition, department)

    def require(
        self, workflow_id: str, department: str | None = None,
    ) -> WorkflowDefinition:
        definition = self.get(workflow_id, department)
        if definition is None:
            raise WorkflowNotFoundError(workflow_id)
        return definition

    def get_by_document_type(self, document_type: str) -> WorkflowDefinition | None:
        """Mapped workflow first, else the first definition of that type."""
        mapped = self._document_types.get(document_type)
        if mapped is not None and mapped in self._definitions:
            return self._definitions[mapped]
        for definition in self._definitions.values():
            if definition.document_type == document_type:
                return definition
        return None

    def list(self) -> tuple[WorkflowDefinition, ...]:
        return tuple(self._definitions.values())

    @property
    def document_types(self) -> dict[str, str]:
        return dict(self._document_types)

    def _augment(self, definition: WorkflowDefinition, department: str) -> WorkflowDefinition:
        for augmentor in self._augmentors:
            try:
                if augmentor.applies_to(department):
                    definition = augmentor.augment(definition)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "workflow_augmentor_failed",
                    extra={
                        "augmentor": type(augmentor).__name__,
                        "workflow_id": definition.workflow_id,
                        "department": department,
                        "error": str(exc),
                    },
                )
        return definition
