"""
Configuration Validator (``governance_config.validator``).

Responsibility
--------------
Structural validation of a loaded ``GovernanceConfiguration`` before any
service is built from it.

Invariants enforced
-------------------
* Role ids and workflow ids are unique; step ids unique per workflow.
* Role inheritance: known parents, no cycles, depth within
  ``hierarchy_rules.inheritance_depth_limit``.
* Every step names a known ``required_role`` and well-formed
  ``resource:action`` permission strings.
* Every workflow has at least one step.
* ``document_types`` map only to known workflow ids.

Failure modes
-------------
* Errors  -> configuration MUST NOT be used.
* Warnings  -> usable, but should be reviewed (e.g. a step permission no
  role grants).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from governance_config.loader import split_permission
from governance_config.schema import GovernanceConfiguration
from governance_engines.role_hierarchy import check_hierarchy, effective_permissions
from governance_kernel.exceptions import InvalidRoleHierarchyError


@dataclass
class ConfigValidationResult:
    """``is_valid`` only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: GovernanceConfiguration) -> ConfigValidationResult:
    """Validate a configuration set; never raises."""
    result = ConfigValidationResult()

    _validate_unique_ids(config, result)
    _validate_role_hierarchy(config, result)
    _validate_workflow_steps(config, result)
    _validate_document_types(config, result)

    return result


def _duplicates(ids: list[str]) -> list[str]:
    return sorted(i for i, n in Counter(ids).items() if n > 1)


def _validate_unique_ids(
    config: GovernanceConfiguration, result: ConfigValidationResult
) -> None:
    for role_id in _duplicates([r.role_id for r in config.roles]):
        result.add_error(f"Duplicate role: {role_id} appears more than once")
    for wf_id in _duplicates([w.workflow_id for w in config.workflows]):
        result.add_error(f"Duplicate workflow: {wf_id} appears more than once")
    for wf in config.workflows:
        for step_id in _duplicates([s.step_id for s in wf.steps]):
            result.add_error(f"Workflow {wf.workflow_id}: duplicate step {step_id}")


def _validate_role_hierarchy(
    config: GovernanceConfiguration, result: ConfigValidationResult
) -> None:
    roles = {r.role_id: r for r in config.roles}
    try:
        check_hierarchy(roles, config.hierarchy_rules.inheritance_depth_limit)
    except InvalidRoleHierarchyError as exc:
        result.add_error(str(exc))


def _validate_workflow_steps(
    config: GovernanceConfiguration, result: ConfigValidationResult
) -> None:
    roles = {r.role_id: r for r in config.roles}
    granted = {
        (p.resource, p.action)
        for role_id in roles
        for p in effective_permissions(role_id, roles)
    }
    for wf in config.workflows:
        if not wf.steps:
            result.add_error(f"Workflow {wf.workflow_id} has no steps")
        for step in wf.steps:
            where = f"Workflow {wf.workflow_id} step {step.step_id}"
            if step.required_role not in roles:
                result.add_error(f"{where}: unknown required_role {step.required_role}")
            for perm in step.required_permissions:
                try:
                    pair = split_permission(perm)
                except ValueError as exc:
                    result.add_error(f"{where}: {exc}")
                    continue
                if pair not in granted:
                    result.add_warning(f"{where}: no role grants {perm}")


def _validate_document_types(
    config: GovernanceConfiguration, result: ConfigValidationResult
) -> None:
    known = {w.workflow_id for w in config.workflows}
    for doc_type, wf_id in config.document_types.items():
        if wf_id not in known:
            result.add_error(
                f"document_types[{doc_type}] references unknown workflow {wf_id}"
            )
