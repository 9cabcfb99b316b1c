"""
Module: governance_engines
Responsibility:
    Re-exports the pure rule engines: condition sets, progress and
    statistics math, drafting stage rules and escalation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import governance_kernel/domain (and sibling engine modules).
    MUST NOT import governance_services.

Invariants enforced:
    - Purity: engines NEVER read the clock.  ``now`` is a parameter.
    - Determinism: identical inputs always produce identical outputs.
"""

from governance_engines.conditions import (
    ConditionMode,
    evaluate_condition,
    evaluate_conditions,
)
from governance_engines.escalation import escalation_reason
from governance_engines.progress import (
    compute_progress,
    compute_statistics,
    estimated_hours_through,
    progress_percent,
)
from governance_engines.role_hierarchy import (
    ancestors,
    check_hierarchy,
    effective_permissions,
)
from governance_engines.stage_rules import (
    DEFAULT_DOCUMENT_TYPES,
    StageValidator,
    default_stage_validators,
    validate_content_draft,
    validate_milestones_tasks,
    validate_template_selection,
)

__all__ = [
    "ConditionMode",
    "evaluate_condition",
    "evaluate_conditions",
    "escalation_reason",
    "compute_progress",
    "compute_statistics",
    "estimated_hours_through",
    "progress_percent",
    "ancestors",
    "check_hierarchy",
    "effective_permissions",
    "DEFAULT_DOCUMENT_TYPES",
    "StageValidator",
    "default_stage_validators",
    "validate_content_draft",
    "validate_milestones_tasks",
    "validate_template_selection",
]
