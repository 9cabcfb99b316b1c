"""
Tests for ContractPermissions.

Tests cover:
- create passes document_type to the ``type`` condition
- per-contract checks carry contract_id plus the caller's context
  (``assigned``, ``owner`` and ``type`` conditions fire through them)
- export, template, dashboard and analytics checks
"""

import pytest


@pytest.fixture
def contracts(engine):
    store = engine.store
    store.assign_role("manager-1", "contract_manager")
    store.assign_role("hr-1", "hr_staff")
    store.assign_role("creator-1", "contract_creator")
    store.assign_role("accountant-1", "accounting_staff")
    store.assign_role("viewer-1", "contract_viewer")
    return engine.contracts


class TestCreate:

    def test_type_condition_reads_document_type(self, contracts):
        assert contracts.can_create_contract("hr-1", "employment") is True
        assert contracts.can_create_contract("hr-1", "financial") is False

    def test_missing_type_denies_conditional_grant(self, contracts):
        assert contracts.can_create_contract("hr-1") is False
        assert contracts.can_create_contract("creator-1") is True

    def test_unknown_subject(self, contracts):
        assert contracts.can_create_contract("ghost", "employment") is False


class TestPerContractChecks:

    def test_assigned_condition(self, contracts):
        assert contracts.can_read_contract(
            "viewer-1", "c-1", {"assigned_users": ["viewer-2", "viewer-1"]},
        ) is True
        assert contracts.can_read_contract("viewer-1", "c-1") is False
        assert contracts.can_read_contract(
            "viewer-1", "c-1", {"assigned_users": ["viewer-2"]},
        ) is False

    def test_owner_condition(self, contracts):
        assert contracts.can_update_contract("creator-1", "c-1", {"owner_id": "creator-1"}) is True
        assert contracts.can_update_contract("creator-1", "c-1", {"owner_id": "other"}) is False

    def test_type_condition_on_decisions(self, contracts):
        financial = {"document_type": "financial"}
        assert contracts.can_approve_contract("accountant-1", "c-1", financial) is True
        assert contracts.can_reject_contract("accountant-1", "c-1", financial) is True
        assert contracts.can_approve_contract(
            "accountant-1", "c-1", {"document_type": "employment"},
        ) is False

    def test_delete_is_manager_only(self, contracts):
        assert contracts.can_delete_contract("manager-1", "c-1") is True
        assert contracts.can_delete_contract("creator-1", "c-1", {"owner_id": "creator-1"}) is False

    def test_contract_id_reaches_evaluator(self, engine, contracts):
        contracts.can_read_contract("manager-1", "c-1")
        contracts.can_read_contract("manager-1", "c-2")
        contracts.can_read_contract("manager-1", "c-1")
        info = engine.evaluator.cache_info()
        assert info["misses"] == 2
        assert info["hits"] == 1

    def test_caller_context_overrides_contract_id(self, engine, contracts):
        contracts.can_read_contract("manager-1", "c-1", {"contract_id": "c-2"})
        contracts.can_read_contract("manager-1", "c-2")
        assert engine.evaluator.cache_info()["hits"] == 1


class TestOtherResources:

    def test_export(self, contracts):
        assert contracts.can_export_contract("accountant-1", "c-1") is True
        assert contracts.can_export_contract("viewer-1", "c-1") is False

    def test_manage_templates(self, contracts):
        assert contracts.can_manage_templates("manager-1") is True
        assert contracts.can_manage_templates("creator-1") is False

    def test_dashboard_and_analytics(self, contracts):
        assert contracts.can_view_dashboard("viewer-1", "overview") is True
        assert contracts.can_view_analytics("manager-1", "spend") is True
        assert contracts.can_view_analytics("hr-1") is False
