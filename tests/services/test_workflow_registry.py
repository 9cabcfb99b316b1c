"""Tests for WorkflowDefinitionRegistry and the department augmentors."""

import pytest

from governance_kernel.domain.workflow import WorkflowDefinition, WorkflowStepDefinition
from governance_kernel.exceptions import (
    InvalidWorkflowDefinitionError,
    WorkflowNotFoundError,
)
from governance_services.workflow_registry import (
    LegalReviewAugmentor,
    WorkflowDefinitionRegistry,
)


def make_workflow(workflow_id: str, document_type: str, *step_ids: str) -> WorkflowDefinition:
    return WorkflowDefinition(
        workflow_id=workflow_id,
        name=workflow_id.replace("_", " ").title(),
        document_type=document_type,
        steps=tuple(
            WorkflowStepDefinition(step_id=s, name=s.title(), required_role="contract_manager")
            for s in step_ids
        ),
    )


class TestLookup:

    def test_default_workflows(self, engine):
        ids = [w.workflow_id for w in engine.registry.list()]
        assert ids == ["employment_contract", "financial_contract", "service_contract"]

    def test_employment_steps(self, engine):
        definition = engine.registry.get("employment_contract")
        assert [s.step_id for s in definition.steps] == [
            "draft", "hr_review", "legal_review", "management_approval", "signature",
        ]
        assert [s.estimated_hours for s in definition.steps] == [4, 8, 16, 24, 2]

    def test_unknown_workflow(self, engine):
        assert engine.registry.get("ghost") is None
        with pytest.raises(WorkflowNotFoundError) as exc_info:
            engine.registry.require("ghost")
        assert exc_info.value.workflow_id == "ghost"

    def test_by_document_type_uses_map(self):
        registry = WorkflowDefinitionRegistry(
            [make_workflow("a", "service", "s"), make_workflow("b", "service", "s")],
            document_types={"service": "b"},
        )
        assert registry.get_by_document_type("service").workflow_id == "b"

    def test_by_document_type_falls_back_to_first_match(self):
        registry = WorkflowDefinitionRegistry(
            [make_workflow("a", "service", "s"), make_workflow("b", "service", "s")],
        )
        assert registry.get_by_document_type("service").workflow_id == "a"
        assert registry.get_by_document_type("nda") is None

    def test_duplicate_ids_rejected(self):
        with pytest.raises(InvalidWorkflowDefinitionError):
            WorkflowDefinitionRegistry([make_workflow("a", "x", "s"), make_workflow("a", "y", "s")])

    def test_empty_workflow_rejected(self):
        with pytest.raises(InvalidWorkflowDefinitionError, match="no steps"):
            WorkflowDefinitionRegistry([make_workflow("a", "x")])


class TestAugmentors:

    def test_legal_department_gets_legal_review(self):
        registry = WorkflowDefinitionRegistry(
            [make_workflow("a", "service", "draft", "approval", "signature")],
            augmentors=[LegalReviewAugmentor()],
        )
        augmented = registry.get("a", department="LEGAL")
        assert [s.step_id for s in augmented.steps] == [
            "draft", "approval", "legal_review", "signature",
        ]
        assert [s.step_id for s in registry.get("a").steps] == [
            "draft", "approval", "signature",
        ]
        assert len(registry.get("a", department="SALES").steps) == 3

    def test_existing_legal_review_left_alone(self, engine):
        definition = engine.registry.get("employment_contract", department="LEGAL")
        assert [s.step_id for s in definition.steps].count("legal_review") == 1

    def test_failing_augmentor_skipped(self, captured_logs):
        class Broken:
            def applies_to(self, department):
                return True

            def augment(self, definition):
                raise RuntimeError("augmentor bug")

        registry = WorkflowDefinitionRegistry(
            [make_workflow("a", "service", "s")], augmentors=[Broken()],
        )
        assert registry.get("a", department="LEGAL").step_count == 1
        assert any(r["message"] == "workflow_augmentor_failed" for r in captured_logs())
