"""
Configuration Loader (``governance_config.loader``).

Responsibility
--------------
Loads the YAML files of one configuration set and parses them into
kernel domain types (``Role``, ``WorkflowDefinition``) plus the config
schema types.  Callers go through ``governance_config.load_configuration``.

Files of a set
--------------
* ``roles.yaml``      -- ``roles`` list and ``hierarchy_rules``.
* ``workflows.yaml``  -- ``workflows`` list and ``document_types`` map.
* ``engine.yaml``     -- ``engine`` settings (optional).

Failure modes
-------------
* Missing YAML file (roles/workflows)  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Malformed permission string  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from governance_config.schema import (
    EngineSettings,
    GovernanceConfiguration,
    HierarchyRulesDef,
)
from governance_engines.conditions import ConditionMode
from governance_kernel.domain.permissions import Permission, Role, as_condition_pairs
from governance_kernel.domain.workflow import (
    StepAction,
    StepActions,
    WorkflowDefinition,
    WorkflowStepDefinition,
)
from governance_kernel.utils.hashing import hash_payload

ROLES_FILE = "roles.yaml"
WORKFLOWS_FILE = "workflows.yaml"
ENGINE_FILE = "engine.yaml"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def split_permission(value: str) -> tuple[str, str]:
    """Split ``"resource:action"``; both halves must be non-empty."""
    resource, sep, action = str(value).partition(":")
    if not sep or not resource or not action or ":" in action:
        raise ValueError(f"Malformed permission {value!r}; expected 'resource:action'")
    return resource, action


def parse_permission(data: Any) -> Permission:
    """Parse ``"contract:read"`` or ``{permission: ..., conditions: {...}}``."""
    if isinstance(data, str):
        resource, action = split_permission(data)
        return Permission(resource=resource, action=action)
    resource, action = split_permission(data["permission"])
    return Permission(
        resource=resource,
        action=action,
        conditions=as_condition_pairs(data.get("conditions")),
    )


def parse_role(data: dict[str, Any]) -> Role:
    return Role(
        role_id=data["id"],
        name=data.get("name", data["id"]),
        description=data.get("description", ""),
        permissions=tuple(parse_permission(p) for p in data.get("permissions", ())),
        inherits=tuple(data.get("inherits", ())),
    )


def parse_step_actions(data: Any) -> StepActions:
    """Accept a list of action names or a ``{name: bool}`` mapping."""
    if not data:
        return StepActions()
    if isinstance(data, dict):
        enabled = [name for name, on in data.items() if on]
    else:
        enabled = list(data)
    flags: dict[str, bool] = {}
    for name in enabled:
        action = StepAction.parse(name)
        if action == StepAction.ESCALATE:
            raise ValueError("'escalate' cannot be offered as a step action")
        flags[action.value] = True
    return StepActions(**flags)


def parse_step(data: dict[str, Any]) -> WorkflowStepDefinition:
    hours = data.get("estimated_hours")
    return WorkflowStepDefinition(
        step_id=data["id"],
        name=data.get("name", data["id"]),
        description=data.get("description", ""),
        required_role=data["required_role"],
        required_permissions=tuple(data.get("required_permissions", ())),
        conditions=as_condition_pairs(data.get("conditions")),
        allowed_actions=parse_step_actions(data.get("allowed_actions")),
        estimated_hours=float(hours) if hours is not None else None,
        optional=bool(data.get("optional", False)),
        skippable=bool(data.get("skippable", False)),
    )


def parse_workflow(data: dict[str, Any]) -> WorkflowDefinition:
    return WorkflowDefinition(
        workflow_id=data["id"],
        name=data.get("name", data["id"]),
        description=data.get("description", ""),
        document_type=data["document_type"],
        steps=tuple(parse_step(s) for s in data.get("steps", ())),
        max_duration_days=data.get("max_duration_days"),
        auto_escalate=bool(data.get("auto_escalate", False)),
        escalation_hours=data.get("escalation_hours"),
    )


def parse_engine_settings(data: dict[str, Any]) -> EngineSettings:
    defaults = EngineSettings()
    return EngineSettings(
        condition_mode=ConditionMode(data.get("condition_mode", defaults.condition_mode.value)),
        enforce_expiry=bool(data.get("enforce_expiry", defaults.enforce_expiry)),
        enforce_allowed_actions=bool(
            data.get("enforce_allowed_actions", defaults.enforce_allowed_actions)
        ),
        max_retries=int(data.get("max_retries", defaults.max_retries)),
        escalation_interval_seconds=float(
            data.get("escalation_interval_seconds", defaults.escalation_interval_seconds)
        ),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON of the raw YAML payloads."""
    return hash_payload(data)


def load_configuration_set(set_dir: Path) -> GovernanceConfiguration:
    """
    Parse every file of one configuration set directory.

    Does not validate cross references; see ``validator.py``.
    """
    roles_raw = load_yaml_file(set_dir / ROLES_FILE)
    workflows_raw = load_yaml_file(set_dir / WORKFLOWS_FILE)
    engine_path = set_dir / ENGINE_FILE
    engine_raw = load_yaml_file(engine_path) if engine_path.exists() else {}

    hierarchy = roles_raw.get("hierarchy_rules") or {}
    return GovernanceConfiguration(
        name=set_dir.name,
        roles=tuple(parse_role(r) for r in roles_raw.get("roles", ())),
        workflows=tuple(parse_workflow(w) for w in workflows_raw.get("workflows", ())),
        document_types=dict(workflows_raw.get("document_types") or {}),
        settings=parse_engine_settings(engine_raw.get("engine") or {}),
        hierarchy_rules=HierarchyRulesDef(
            inheritance_depth_limit=int(hierarchy.get("inheritance_depth_limit", 2)),
        ),
        checksum=compute_checksum({
            "roles": roles_raw,
            "workflows": workflows_raw,
            "engine": engine_raw,
        }),
        source_dir=set_dir,
    )
