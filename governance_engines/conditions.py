"""
governance_engines.conditions -- Pure condition-set evaluation.

Responsibility:
    Decide whether a permission's (or a step's) condition set holds for a
    subject in a given context.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import governance_kernel/domain/ types.

Semantics:
    Each recognized key yields a decision (True/False) or no decision
    (None).  Keys are visited in declaration order.

    ========== ==================================================
    key        decision
    ========== ==================================================
    owner      ``True`` -> context owner_id == subject; else none
    department context department == value
    type       context document_type == value
    assigned   ``True`` -> subject in assigned_users or is owner
    status     context status == value
    amount     nonzero max: amount <= max; elif nonzero min: amount >= min
    (other)    none
    ========== ==================================================

    ``ConditionMode.FIRST_DECISION`` (default): the first key that
    decides returns its decision; a set with no deciding key passes.

    ``ConditionMode.ALL``: every decision must be True, and ``amount``
    checks both bounds, zero included.

Failure modes:
    None.  Missing context fields and malformed amounts evaluate to False;
    unknown keys never decide.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from governance_kernel.domain.permissions import AmountRange, ConditionPairs


class ConditionMode(str, Enum):
    """How a multi-key condition set combines its decisions."""

    FIRST_DECISION = "first_decision"
    ALL = "all"


def _ctx(context: Mapping[str, Any], key: str) -> Any:
    return context.get(key)


def _as_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return None if amount.is_nan() else amount


def _same_subject(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)


def _evaluate_amount(
    value: Any, context: Mapping[str, Any], both_bounds: bool,
) -> bool | None:
    try:
        bounds = AmountRange.from_value(value)
    except (ValueError, InvalidOperation):
        return None
    if both_bounds:
        if bounds.min is None and bounds.max is None:
            return None
        amount = _as_decimal(_ctx(context, "amount"))
        if amount is None:
            return False
        if bounds.max is not None and amount > bounds.max:
            return False
        if bounds.min is not None and amount < bounds.min:
            return False
        return True
    # A zero bound counts as unset here.
    if not bounds.max and not bounds.min:
        return None
    amount = _as_decimal(_ctx(context, "amount"))
    if amount is None:
        return False
    if bounds.max:
        return amount <= bounds.max
    return amount >= bounds.min


def evaluate_condition(
    key: str,
    value: Any,
    subject_id: str,
    context: Mapping[str, Any],
    *,
    mode: ConditionMode = ConditionMode.FIRST_DECISION,
) -> bool | None:
    """Evaluate one condition key.  None means the key does not decide."""
    if key == "owner":
        if value is True:
            return _same_subject(_ctx(context, "owner_id"), subject_id)
        return None
    if key == "department":
        return _ctx(context, "department") == value
    if key == "type":
        return _ctx(context, "document_type") == value
    if key == "assigned":
        if value is True:
            assigned = _ctx(context, "assigned_users")
            if isinstance(assigned, str):
                assigned = (assigned,)
            elif not isinstance(assigned, (list, tuple, set, frozenset)):
                assigned = ()
            if any(_same_subject(user, subject_id) for user in assigned):
                return True
            return _same_subject(_ctx(context, "owner_id"), subject_id)
        return None
    if key == "status":
        return _ctx(context, "status") == value
    if key == "amount":
        return _evaluate_amount(value, context, both_bounds=mode == ConditionMode.ALL)
    return None


def evaluate_conditions(
    conditions: ConditionPairs | Mapping[str, Any],
    subject_id: str,
    context: Mapping[str, Any] | None,
    *,
    mode: ConditionMode = ConditionMode.FIRST_DECISION,
) -> bool:
    """Evaluate a whole condition set for ``subject_id`` in ``context``.

    Args:
        conditions: Ordered ``(key, value)`` pairs or a mapping.
        subject_id: The acting subject.
        context: Attribute mapping; None is treated as empty.
        mode: FIRST_DECISION (default) or ALL.

    Returns:
        Whether the set holds.
    """
    items = conditions.items() if isinstance(conditions, Mapping) else conditions
    ctx: Mapping[str, Any] = context if context is not None else {}

    for key, value in items:
        decision = evaluate_condition(key, value, subject_id, ctx, mode=mode)
        if decision is None:
            continue
        if mode == ConditionMode.FIRST_DECISION:
            return decision
        if not decision:
            return False
    return True
