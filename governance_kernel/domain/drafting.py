"""
Drafting stage-gate types (``governance_kernel.domain.drafting``).

Five fixed stages a contract passes through while it is being drafted,
before it ever enters an approval workflow.  Pure value objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class DraftingStage(str, Enum):
    """Drafting stages, declared in their fixed order."""

    TEMPLATE_SELECTION = "template_selection"
    BASIC_INFO = "basic_info"
    CONTENT_DRAFT = "content_draft"
    MILESTONES_TASKS = "milestones_tasks"
    REVIEW_PREVIEW = "review_preview"


STAGE_ORDER: tuple[DraftingStage, ...] = tuple(DraftingStage)


class StageStatus(str, Enum):
    LOCKED = "locked"
    INCOMPLETE = "incomplete"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class StageCheck:
    """Raw output of a stage validator: blocking errors and warnings."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def passed(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class StageValidation:
    """Stored gate state for one stage."""

    stage: DraftingStage
    status: StageStatus
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    is_accessible: bool = False
    completed_at: datetime | None = None


def stage_index(stage: DraftingStage) -> int:
    return STAGE_ORDER.index(stage)


def initial_stage_validations() -> dict[DraftingStage, StageValidation]:
    """First stage open and incomplete; every later stage locked."""
    validations: dict[DraftingStage, StageValidation] = {}
    for stage in STAGE_ORDER:
        if stage == DraftingStage.TEMPLATE_SELECTION:
            validations[stage] = StageValidation(
                stage=stage, status=StageStatus.INCOMPLETE, is_accessible=True,
            )
        else:
            validations[stage] = StageValidation(
                stage=stage, status=StageStatus.LOCKED, is_accessible=False,
            )
    return validations
