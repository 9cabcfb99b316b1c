"""
Configuration schema (``governance_config.schema``).

Frozen dataclasses describing a loaded configuration set.  Roles and
workflow definitions are parsed straight into kernel domain types; the
types below only cover what the kernel does not model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from governance_engines.conditions import ConditionMode
from governance_kernel.domain.permissions import Role
from governance_kernel.domain.workflow import WorkflowDefinition


@dataclass(frozen=True)
class HierarchyRulesDef:
    """Role hierarchy constraints."""

    inheritance_depth_limit: int = 2


@dataclass(frozen=True)
class EngineSettings:
    """Behaviour switches for the evaluator and the instance manager.

    Defaults reproduce the reference behaviour: single-condition-wins
    evaluation, expiry ignored, step allowed_actions not enforced.
    """

    condition_mode: ConditionMode = ConditionMode.FIRST_DECISION
    enforce_expiry: bool = False
    enforce_allowed_actions: bool = False
    max_retries: int = 3
    escalation_interval_seconds: float = 300.0


@dataclass(frozen=True)
class GovernanceConfiguration:
    """A fully loaded and validated configuration set."""

    name: str
    roles: tuple[Role, ...]
    workflows: tuple[WorkflowDefinition, ...]
    document_types: dict[str, str] = field(default_factory=dict)
    settings: EngineSettings = field(default_factory=EngineSettings)
    hierarchy_rules: HierarchyRulesDef = field(default_factory=HierarchyRulesDef)
    checksum: str = ""
    source_dir: Path | None = None
