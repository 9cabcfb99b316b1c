"""
governance_services.stage_gate -- Linear drafting gate.

Responsibility:
    Track a contract draft through the five fixed ``DraftingStage``s.
    A stage unlocks only after the previous one validates; validation is
    delegated to pluggable per-stage rules.

Architecture position:
    Services layer.  Independent of the approval workflow: it never
    touches permissions or workflow instances.

Invariants enforced:
    - ``template_selection`` is always reachable.
    - A stage is accessible only once every earlier stage has validated.
    - An invalid result re-locks every later stage.
    - Editing the draft while the current stage is valid drops it back
      to incomplete and re-locks every later stage.

One controller per drafting session; it is not thread-safe.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from governance_engines.stage_rules import StageValidator, default_stage_validators
from governance_kernel.domain.clock import Clock, SystemClock
from governance_kernel.domain.drafting import (
    STAGE_ORDER,
    DraftingStage,
    StageCheck,
    StageStatus,
    StageValidation,
    initial_stage_validations,
    stage_index,
)
from governance_kernel.logging_config import get_logger

logger = get_logger("services.stage_gate")


class StageGateController:
    """Validation-driven progression through the drafting stages."""

    def __init__(
        self,
        validators: Mapping[DraftingStage, StageValidator] | None = None,
        clock: Clock | None = None,
        initial_draft: Mapping[str, Any] | None = None,
    ) -> None:
        self._validators = dict(default_stage_validators())
        if validators:
            self._validators.update(validators)
        self._clock = clock or SystemClock()
        self._initial_draft = dict(initial_draft or {})
        self._draft: dict[str, Any] = dict(self._initial_draft)
        self._validations = initial_stage_validations()
        self._current = DraftingStage.TEMPLATE_SELECTION

    @property
    def current_stage(self) -> DraftingStage:
        return self._current

    @property
    def draft(self) -> dict[str, Any]:
        return dict(self._draft)

    @property
    def stage_validations(self) -> dict[DraftingStage, StageValidation]:
        return dict(self._validations)

    def get_stage_validation(self, stage: DraftingStage | str) -> StageValidation:
        return self._validations[DraftingStage(stage)]

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def can_navigate_to_stage(self, stage: DraftingStage | str) -> bool:
        stage = DraftingStage(stage)
        if stage == DraftingStage.TEMPLATE_SELECTION:
            return True
        return self._validations[stage].is_accessible

    def navigate_to_stage(self, stage: DraftingStage | str) -> bool:
        stage = DraftingStage(stage)
        if not self.can_navigate_to_stage(stage):
            logger.warning(
                "stage_navigation_denied",
                extra={"from_stage": self._current.value, "to_stage": stage.value},
            )
            return False
        self._current = stage
        return True

    def next_stage(self) -> bool:
        """Advance one stage; only from a valid current stage."""
        if self._validations[self._current].status != StageStatus.VALID:
            return False
        position = stage_index(self._current)
        if position + 1 >= len(STAGE_ORDER):
            return False
        return self.navigate_to_stage(STAGE_ORDER[position + 1])

    def previous_stage(self) -> bool:
        position = stage_index(self._current)
        if position == 0:
            return False
        return self.navigate_to_stage(STAGE_ORDER[position - 1])

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_current_stage(self) -> bool:
        """Run the current stage's rule and record the result."""
        stage = self._current
        validator = self._validators.get(stage)
        check = validator(self._draft) if validator is not None else StageCheck()
        position = stage_index(stage)

        if check.passed:
            self._validations[stage] = StageValidation(
                stage=stage,
                status=StageStatus.VALID,
                warnings=check.warnings,
                is_accessible=True,
                completed_at=self._clock.now(),
            )
            if position + 1 < len(STAGE_ORDER):
                following = STAGE_ORDER[position + 1]
                if self._validations[following].status == StageStatus.LOCKED:
                    self._validations[following] = StageValidation(
                        stage=following,
                        status=StageStatus.INCOMPLETE,
                        is_accessible=True,
                    )
        else:
            self._validations[stage] = StageValidation(
                stage=stage,
                status=StageStatus.INVALID,
                errors=check.errors,
                warnings=check.warnings,
                is_accessible=True,
            )
            self._lock_after(position)

        logger.info(
            "stage_validated",
            extra={
                "stage": stage.value,
                "stage_status": self._validations[stage].status.value,
                "error_count": len(check.errors),
                "warning_count": len(check.warnings),
            },
        )
        return check.passed

    # ------------------------------------------------------------------
    # Draft editing
    # ------------------------------------------------------------------

    def update_draft(self, **fields: Any) -> None:
        self._draft.update(fields)
        current = self._validations[self._current]
        if current.status == StageStatus.VALID:
            self._validations[self._current] = replace(
                current, status=StageStatus.INCOMPLETE, completed_at=None,
            )
            self._lock_after(stage_index(self._current))

    def _lock_after(self, position: int) -> None:
        for later in STAGE_ORDER[position + 1:]:
            self._validations[later] = StageValidation(
                stage=later, status=StageStatus.LOCKED, is_accessible=False,
            )

    def reset(self) -> None:
        self._draft = dict(self._initial_draft)
        self._validations = initial_stage_validations()
        self._current = DraftingStage.TEMPLATE_SELECTION
