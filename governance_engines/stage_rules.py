"""
governance_engines.stage_rules -- Field-level rules for each drafting stage.

Responsibility:
    One validator per ``DraftingStage``.  A validator takes the draft
    (a mapping of contract fields) and returns a ``StageCheck`` with
    blocking errors and non-blocking warnings.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Draft fields read:
    mode, template_id, name, document_type, manager,
    date_range.{start_date, end_date}, field_values, description,
    editor_content.plain_text, uploaded_file,
    milestones[].{id, name, assignee_id, date_range, tasks[]},
    tasks[].{id, name, assignee_id, estimated_hours, dependencies}

Dates may be ``date``/``datetime`` objects or ISO-8601 strings.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from governance_kernel.domain.drafting import DraftingStage, StageCheck

StageValidator = Callable[[Mapping[str, Any]], StageCheck]

DRAFTING_MODES = frozenset({"basic", "editor", "upload"})

DEFAULT_DOCUMENT_TYPES = frozenset({
    "service",
    "purchase",
    "employment",
    "nda",
    "partnership",
    "rental",
    "financial",
    "custom",
})


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (Mapping, list, tuple)):
        return len(value) == 0
    return False


def _as_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            return None
    return None


def _check_date_range(
    range_value: Any, label: str, errors: list[str],
) -> tuple[date | None, date | None]:
    """Append errors for a missing/unordered range; return parsed bounds."""
    range_value = range_value if isinstance(range_value, Mapping) else {}
    start = _as_date(range_value.get("start_date"))
    end = _as_date(range_value.get("end_date"))
    if start is None:
        errors.append(f"{label} start date is required")
    if end is None:
        errors.append(f"{label} end date is required")
    if start is not None and end is not None and end < start:
        errors.append(f"{label} end date must not be before its start date")
    return start, end


# ---------------------------------------------------------------------------
# Per-stage rules
# ---------------------------------------------------------------------------


def validate_template_selection(draft: Mapping[str, Any]) -> StageCheck:
    errors: list[str] = []
    mode = draft.get("mode")
    if not isinstance(mode, str) or mode not in DRAFTING_MODES:
        errors.append("Drafting mode must be one of: basic, editor, upload")
    elif mode in ("basic", "editor") and _blank(draft.get("template_id")):
        errors.append("A template must be selected")
    return StageCheck(errors=tuple(errors))


def make_basic_info_validator(
    document_types: Iterable[str] = DEFAULT_DOCUMENT_TYPES,
) -> StageValidator:
    """Basic-info rule bound to the set of known document types."""
    known = frozenset(document_types)

    def validate_basic_info(draft: Mapping[str, Any]) -> StageCheck:
        errors: list[str] = []
        warnings: list[str] = []
        if _blank(draft.get("name")):
            errors.append("Contract name is required")
        document_type = draft.get("document_type")
        if _blank(document_type):
            errors.append("Contract type is required")
        elif not isinstance(document_type, str) or document_type not in known:
            errors.append(f"Unknown contract type: {document_type}")
        _check_date_range(draft.get("date_range"), "Contract", errors)
        if _blank(draft.get("manager")):
            warnings.append("No contract manager assigned")
        return StageCheck(errors=tuple(errors), warnings=tuple(warnings))

    return validate_basic_info


validate_basic_info = make_basic_info_validator()


def validate_content_draft(draft: Mapping[str, Any]) -> StageCheck:
    errors: list[str] = []
    mode = draft.get("mode")
    if mode == "basic":
        if _blank(draft.get("field_values")) and _blank(draft.get("description")):
            errors.append("Fill in the template fields or a description")
    elif mode == "editor":
        editor = draft.get("editor_content")
        text = editor.get("plain_text") if isinstance(editor, Mapping) else None
        if _blank(text):
            errors.append("Contract content is empty")
    elif mode == "upload":
        if _blank(draft.get("uploaded_file")):
            errors.append("A contract file must be uploaded")
    else:
        errors.append("Drafting mode must be one of: basic, editor, upload")
    return StageCheck(errors=tuple(errors))


def _task_key(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _positive(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return Decimal(str(value)) > 0
    except (InvalidOperation, ValueError):
        return False


def validate_milestones_tasks(draft: Mapping[str, Any]) -> StageCheck:
    errors: list[str] = []
    warnings: list[str] = []
    milestones = draft.get("milestones") or ()
    if not milestones:
        return StageCheck(errors=("At least one milestone is required",))
    if not isinstance(milestones, (list, tuple)):
        return StageCheck(errors=("Milestones must be a list",))

    contract_range = draft.get("date_range")
    contract_range = contract_range if isinstance(contract_range, Mapping) else {}
    contract_start = _as_date(contract_range.get("start_date"))
    contract_end = _as_date(contract_range.get("end_date"))

    task_ids = {
        task.get("id")
        for milestone in milestones if isinstance(milestone, Mapping)
        for task in _as_list(milestone.get("tasks"))
        if isinstance(task, Mapping) and _task_key(task.get("id"))
    }

    for m_pos, milestone in enumerate(milestones, start=1):
        if not isinstance(milestone, Mapping):
            errors.append(f"Milestone {m_pos} is malformed")
            continue
        label = f"Milestone {milestone.get('name') or m_pos}"
        if _blank(milestone.get("name")):
            errors.append(f"Milestone {m_pos} needs a name")
        if _blank(milestone.get("assignee_id")):
            errors.append(f"{label} needs an assignee")
        start, end = _check_date_range(milestone.get("date_range"), label, errors)
        if (
            (start is not None and contract_start is not None and start < contract_start)
            or (end is not None and contract_end is not None and end > contract_end)
        ):
            warnings.append(f"{label} falls outside the contract date range")

        for t_pos, task in enumerate(_as_list(milestone.get("tasks")), start=1):
            if not isinstance(task, Mapping):
                errors.append(f"{label} task {t_pos} is malformed")
                continue
            t_label = f"{label} task {task.get('name') or t_pos}"
            if _blank(task.get("name")):
                errors.append(f"{label} task {t_pos} needs a name")
            if _blank(task.get("assignee_id")):
                errors.append(f"{t_label} needs an assignee")
            if not _positive(task.get("estimated_hours")):
                errors.append(f"{t_label} needs positive estimated hours")
            for dep in _as_list(task.get("dependencies")):
                if not _task_key(dep) or dep not in task_ids:
                    errors.append(f"{t_label} depends on unknown task {dep}")
                elif dep == task.get("id"):
                    errors.append(f"{t_label} depends on itself")

    return StageCheck(errors=tuple(errors), warnings=tuple(warnings))


def make_review_preview_validator(
    earlier: Mapping[DraftingStage, StageValidator],
) -> StageValidator:
    """Review passes only when every earlier stage's rule passes."""

    def validate_review_preview(draft: Mapping[str, Any]) -> StageCheck:
        errors: list[str] = []
        warnings: list[str] = []
        for stage, validator in earlier.items():
            check = validator(draft)
            errors.extend(f"{stage.value}: {e}" for e in check.errors)
            warnings.extend(f"{stage.value}: {w}" for w in check.warnings)
        return StageCheck(errors=tuple(errors), warnings=tuple(warnings))

    return validate_review_preview


def default_stage_validators(
    document_types: Iterable[str] = DEFAULT_DOCUMENT_TYPES,
) -> dict[DraftingStage, StageValidator]:
    """The standard validator for every stage."""
    earlier: dict[DraftingStage, StageValidator] = {
        DraftingStage.TEMPLATE_SELECTION: validate_template_selection,
        DraftingStage.BASIC_INFO: make_basic_info_validator(document_types),
        DraftingStage.CONTENT_DRAFT: validate_content_draft,
        DraftingStage.MILESTONES_TASKS: validate_milestones_tasks,
    }
    validators = dict(earlier)
    validators[DraftingStage.REVIEW_PREVIEW] = make_review_preview_validator(earlier)
    return validators
