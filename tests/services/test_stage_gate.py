"""
Tests for StageGateController.

Tests cover:
- Initial state: only template_selection reachable
- Validation unlocks exactly the next stage; failure re-locks everything after
- next_stage / previous_stage / navigate_to_stage guards
- Editing a validated stage drops it back to incomplete
- Engine-built gates know the configured document types
"""

from governance_kernel.domain.drafting import DraftingStage, StageCheck, StageStatus
from governance_services.stage_gate import StageGateController

GOOD_BASIC_INFO = {
    "mode": "basic",
    "template_id": "tpl-1",
    "name": "Consulting agreement",
    "document_type": "service",
    "manager": "manager-1",
    "date_range": {"start_date": "2026-02-01", "end_date": "2026-06-30"},
}


def always_pass(draft):
    return StageCheck()


def switchable(verdict):
    def validator(draft):
        return StageCheck() if verdict["ok"] else StageCheck(errors=("nope",))

    return validator


class TestInitialState:

    def test_only_first_stage_reachable(self, clock):
        gate = StageGateController(clock=clock)
        assert gate.current_stage == DraftingStage.TEMPLATE_SELECTION
        assert gate.can_navigate_to_stage("template_selection") is True
        assert gate.can_navigate_to_stage(DraftingStage.BASIC_INFO) is False
        assert gate.can_navigate_to_stage(DraftingStage.REVIEW_PREVIEW) is False
        assert gate.get_stage_validation("basic_info").status == StageStatus.LOCKED
        statuses = {stage: v.status for stage, v in gate.stage_validations.items()}
        assert list(statuses) == list(DraftingStage)
        assert list(statuses.values()).count(StageStatus.LOCKED) == 4

    def test_next_stage_requires_valid_current(self, clock):
        gate = StageGateController(clock=clock)
        assert gate.next_stage() is False
        assert gate.current_stage == DraftingStage.TEMPLATE_SELECTION

    def test_previous_from_first_stage(self, clock):
        assert StageGateController(clock=clock).previous_stage() is False


class TestValidation:

    def test_pass_unlocks_next_stage_only(self, clock):
        gate = StageGateController(clock=clock, initial_draft=GOOD_BASIC_INFO)
        assert gate.validate_current_stage() is True

        first = gate.get_stage_validation(DraftingStage.TEMPLATE_SELECTION)
        assert first.status == StageStatus.VALID
        assert first.completed_at == clock.now()
        basic = gate.get_stage_validation(DraftingStage.BASIC_INFO)
        assert basic.status == StageStatus.INCOMPLETE
        assert basic.is_accessible is True
        assert gate.can_navigate_to_stage(DraftingStage.CONTENT_DRAFT) is False

    def test_warnings_do_not_block(self, clock):
        draft = dict(GOOD_BASIC_INFO, manager="")
        gate = StageGateController(clock=clock, initial_draft=draft)
        gate.validate_current_stage()
        assert gate.next_stage() is True
        assert gate.validate_current_stage() is True
        basic = gate.get_stage_validation(DraftingStage.BASIC_INFO)
        assert basic.warnings == ("No contract manager assigned",)

    def test_failure_records_errors(self, clock):
        gate = StageGateController(clock=clock, initial_draft={"mode": "fax"})
        assert gate.validate_current_stage() is False
        result = gate.get_stage_validation(DraftingStage.TEMPLATE_SELECTION)
        assert result.status == StageStatus.INVALID
        assert result.errors
        assert result.is_accessible is True

    def test_failure_relocks_later_stages(self, clock):
        verdict = {"ok": True}
        validators = {stage: switchable(verdict) for stage in DraftingStage}
        gate = StageGateController(validators=validators, clock=clock)
        for _ in range(3):
            assert gate.validate_current_stage()
            assert gate.next_stage()
        assert gate.current_stage == DraftingStage.MILESTONES_TASKS

        gate.navigate_to_stage(DraftingStage.BASIC_INFO)
        verdict["ok"] = False
        assert gate.validate_current_stage() is False

        for stage in (
            DraftingStage.CONTENT_DRAFT,
            DraftingStage.MILESTONES_TASKS,
            DraftingStage.REVIEW_PREVIEW,
        ):
            assert gate.get_stage_validation(stage).status == StageStatus.LOCKED
            assert gate.can_navigate_to_stage(stage) is False
        assert gate.can_navigate_to_stage(DraftingStage.TEMPLATE_SELECTION) is True

    def test_stage_validated_logged(self, clock, captured_logs):
        gate = StageGateController(clock=clock, initial_draft={"mode": "fax"})
        gate.validate_current_stage()
        (record,) = [r for r in captured_logs() if r["message"] == "stage_validated"]
        assert record["stage"] == "template_selection"
        assert record["stage_status"] == "invalid"
        assert record["error_count"] == 1


class TestNavigation:

    def test_walk_forward_and_back(self, clock):
        validators = {stage: always_pass for stage in DraftingStage}
        gate = StageGateController(validators=validators, clock=clock)
        while gate.current_stage != DraftingStage.REVIEW_PREVIEW:
            gate.validate_current_stage()
            assert gate.next_stage()
        gate.validate_current_stage()
        assert gate.next_stage() is False

        assert gate.previous_stage() is True
        assert gate.current_stage == DraftingStage.MILESTONES_TASKS
        assert gate.navigate_to_stage("template_selection") is True

    def test_denied_navigation_logged(self, clock, captured_logs):
        gate = StageGateController(clock=clock)
        assert gate.navigate_to_stage(DraftingStage.CONTENT_DRAFT) is False
        assert gate.current_stage == DraftingStage.TEMPLATE_SELECTION
        assert any(r["message"] == "stage_navigation_denied" for r in captured_logs())


class TestDraftEditing:

    def test_edit_after_validation_resets_current_stage(self, clock):
        gate = StageGateController(clock=clock, initial_draft=GOOD_BASIC_INFO)
        gate.validate_current_stage()
        gate.update_draft(template_id="tpl-2")
        current = gate.get_stage_validation(DraftingStage.TEMPLATE_SELECTION)
        assert current.status == StageStatus.INCOMPLETE
        assert current.completed_at is None
        assert gate.draft["template_id"] == "tpl-2"
        assert gate.next_stage() is False

    def test_edit_of_earlier_stage_relocks_later_stages(self, clock):
        verdict = {"ok": True}
        gate = StageGateController(
            clock=clock,
            validators={stage: switchable(verdict) for stage in DraftingStage},
        )
        gate.validate_current_stage()
        gate.next_stage()
        gate.validate_current_stage()
        assert gate.can_navigate_to_stage(DraftingStage.CONTENT_DRAFT) is True
        assert gate.previous_stage() is True

        verdict["ok"] = False
        gate.update_draft(mode="garbage")

        first = gate.get_stage_validation(DraftingStage.TEMPLATE_SELECTION)
        assert first.status == StageStatus.INCOMPLETE
        assert gate.can_navigate_to_stage(DraftingStage.BASIC_INFO) is False
        assert gate.can_navigate_to_stage(DraftingStage.CONTENT_DRAFT) is False
        assert gate.navigate_to_stage(DraftingStage.CONTENT_DRAFT) is False
        assert gate.current_stage == DraftingStage.TEMPLATE_SELECTION
        assert gate.get_stage_validation("basic_info").status == StageStatus.LOCKED

    def test_draft_property_is_a_copy(self, clock):
        gate = StageGateController(clock=clock)
        gate.draft["name"] = "sneaky"
        assert "name" not in gate.draft

    def test_reset(self, clock):
        gate = StageGateController(clock=clock, initial_draft=GOOD_BASIC_INFO)
        gate.validate_current_stage()
        gate.next_stage()
        gate.update_draft(name="Changed")
        gate.reset()
        assert gate.current_stage == DraftingStage.TEMPLATE_SELECTION
        assert gate.draft == GOOD_BASIC_INFO
        assert gate.can_navigate_to_stage(DraftingStage.BASIC_INFO) is False


class TestEngineGate:

    def test_configured_document_types(self, engine):
        gate = engine.new_stage_gate(dict(GOOD_BASIC_INFO, document_type="nda"))
        gate.validate_current_stage()
        gate.next_stage()
        assert gate.validate_current_stage() is False
        assert gate.get_stage_validation("basic_info").errors == ("Unknown contract type: nda",)

        gate.update_draft(document_type="employment")
        assert gate.validate_current_stage() is True
