"""
Tests for the pure condition-set engine.

Tests cover:
- evaluate_condition: each recognized key, non-deciding values, unknown keys
- evaluate_conditions FIRST_DECISION: the first deciding key wins
- evaluate_conditions ALL: every decision must hold, amount checks both bounds
- Fuzzing: never raises on arbitrary contexts
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from governance_engines.conditions import (
    ConditionMode,
    evaluate_condition,
    evaluate_conditions,
)
from governance_kernel.domain.permissions import AmountRange, as_condition_pairs


class TestEvaluateCondition:

    def test_owner_true_matches_owner(self):
        assert evaluate_condition("owner", True, "u-1", {"owner_id": "u-1"}) is True
        assert evaluate_condition("owner", True, "u-1", {"owner_id": "u-2"}) is False

    def test_owner_missing_from_context_is_false(self):
        assert evaluate_condition("owner", True, "u-1", {}) is False

    def test_owner_other_values_do_not_decide(self):
        assert evaluate_condition("owner", False, "u-1", {"owner_id": "u-1"}) is None

    def test_department(self):
        assert evaluate_condition("department", "hr", "u", {"department": "hr"}) is True
        assert evaluate_condition("department", "hr", "u", {"department": "legal"}) is False

    def test_type_reads_document_type(self):
        ctx = {"document_type": "employment"}
        assert evaluate_condition("type", "employment", "u", ctx) is True
        assert evaluate_condition("type", "financial", "u", ctx) is False

    def test_assigned_in_list(self):
        ctx = {"assigned_users": ["u-1", "u-2"]}
        assert evaluate_condition("assigned", True, "u-2", ctx) is True
        assert evaluate_condition("assigned", True, "u-3", ctx) is False

    def test_assigned_falls_back_to_owner(self):
        ctx = {"assigned_users": [], "owner_id": "u-9"}
        assert evaluate_condition("assigned", True, "u-9", ctx) is True

    def test_assigned_single_string(self):
        assert evaluate_condition("assigned", True, "u-1", {"assigned_users": "u-1"}) is True

    def test_status(self):
        assert evaluate_condition("status", "draft", "u", {"status": "draft"}) is True
        assert evaluate_condition("status", "draft", "u", {"status": "signed"}) is False

    def test_amount_max_only(self):
        bounds = AmountRange(max=Decimal("1000"))
        assert evaluate_condition("amount", bounds, "u", {"amount": 1000}) is True
        assert evaluate_condition("amount", bounds, "u", {"amount": "1000.01"}) is False

    def test_amount_min_only(self):
        bounds = {"min": 500}
        assert evaluate_condition("amount", bounds, "u", {"amount": 500}) is True
        assert evaluate_condition("amount", bounds, "u", {"amount": 499}) is False

    def test_amount_first_decision_checks_max_only(self):
        bounds = AmountRange(min=Decimal("100"), max=Decimal("1000"))
        assert evaluate_condition("amount", bounds, "u", {"amount": 5}) is True

    def test_amount_all_mode_checks_both_bounds(self):
        bounds = AmountRange(min=Decimal("100"), max=Decimal("1000"))
        assert evaluate_condition(
            "amount", bounds, "u", {"amount": 5}, mode=ConditionMode.ALL,
        ) is False
        assert evaluate_condition(
            "amount", bounds, "u", {"amount": 500}, mode=ConditionMode.ALL,
        ) is True

    def test_amount_missing_or_malformed_is_false(self):
        bounds = AmountRange(max=Decimal("1000"))
        assert evaluate_condition("amount", bounds, "u", {}) is False
        assert evaluate_condition("amount", bounds, "u", {"amount": "lots"}) is False

    def test_amount_without_bounds_does_not_decide(self):
        assert evaluate_condition("amount", AmountRange(), "u", {"amount": 1}) is None

    def test_amount_zero_max_falls_through_to_min(self):
        bounds = {"max": 0, "min": 5}
        assert evaluate_condition("amount", bounds, "u", {"amount": 10}) is True
        assert evaluate_condition("amount", bounds, "u", {"amount": 3}) is False

    def test_amount_zero_bounds_do_not_decide(self):
        assert evaluate_condition("amount", {"max": 0}, "u", {"amount": 10}) is None
        assert evaluate_condition("amount", {"min": 0, "max": 0}, "u", {}) is None

    def test_amount_all_mode_honours_zero_max(self):
        assert evaluate_condition(
            "amount", {"max": 0, "min": 5}, "u", {"amount": 10}, mode=ConditionMode.ALL,
        ) is False

    def test_unknown_key_does_not_decide(self):
        assert evaluate_condition("region", "eu", "u", {"region": "eu"}) is None


class TestFirstDecisionMode:

    def test_first_deciding_key_wins(self):
        conditions = as_condition_pairs({"department": "hr", "type": "financial"})
        ctx = {"department": "hr", "document_type": "employment"}
        # department decides True; the failing type key is never consulted.
        assert evaluate_conditions(conditions, "u", ctx) is True

    def test_first_deciding_key_can_deny(self):
        conditions = as_condition_pairs({"department": "legal", "type": "employment"})
        ctx = {"department": "hr", "document_type": "employment"}
        assert evaluate_conditions(conditions, "u", ctx) is False

    def test_non_deciding_keys_are_skipped(self):
        conditions = (("region", "eu"), ("owner", False), ("status", "draft"))
        assert evaluate_conditions(conditions, "u", {"status": "signed"}) is False

    def test_no_deciding_key_passes(self):
        assert evaluate_conditions((("region", "eu"),), "u", {}) is True
        assert evaluate_conditions((), "u", {}) is True

    def test_none_context_treated_as_empty(self):
        assert evaluate_conditions((("department", "hr"),), "u", None) is False


class TestAllMode:

    def test_every_decision_must_hold(self):
        conditions = as_condition_pairs({"department": "hr", "type": "financial"})
        ctx = {"department": "hr", "document_type": "employment"}
        assert evaluate_conditions(conditions, "u", ctx, mode=ConditionMode.ALL) is False

    def test_all_hold(self):
        conditions = as_condition_pairs({
            "department": "accounting",
            "amount": {"min": 10, "max": 100},
        })
        ctx = {"department": "accounting", "amount": "50"}
        assert evaluate_conditions(conditions, "u", ctx, mode=ConditionMode.ALL) is True

    def test_mapping_accepted(self):
        ctx = {"status": "draft"}
        assert evaluate_conditions({"status": "draft"}, "u", ctx, mode=ConditionMode.ALL)


_CONTEXT_VALUES = st.one_of(
    st.none(),
    st.booleans(),
    st.integers(),
    st.text(max_size=8),
    st.lists(st.text(max_size=4), max_size=3),
)


class TestConditionFuzzing:

    @settings(max_examples=200, deadline=None)
    @given(
        context=st.dictionaries(
            st.sampled_from(
                ["owner_id", "department", "document_type", "assigned_users", "status", "amount"]
            ),
            _CONTEXT_VALUES,
        ),
        mode=st.sampled_from(list(ConditionMode)),
    )
    def test_never_raises_and_returns_bool(self, context, mode):
        conditions = as_condition_pairs({
            "owner": True,
            "assigned": True,
            "department": "hr",
            "amount": {"min": 1, "max": 10},
        })
        result = evaluate_conditions(conditions, "u-1", context, mode=mode)
        assert isinstance(result, bool)

    @pytest.mark.parametrize("mode", list(ConditionMode))
    def test_single_key_modes_agree(self, mode):
        conditions = (("department", "hr"),)
        assert evaluate_conditions(conditions, "u", {"department": "hr"}, mode=mode) is True
        assert evaluate_conditions(conditions, "u", {"department": "it"}, mode=mode) is False
