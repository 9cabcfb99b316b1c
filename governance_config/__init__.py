"""
governance_config -- single public entrypoint for governance configuration.

Responsibility:
    ``load_configuration()`` is the only way services obtain roles,
    workflow definitions, the document-type map and engine settings.
    YAML parsing lives in ``loader.py``; structural checks in
    ``validator.py``.

Architecture position:
    Configuration -- sits above ``governance_kernel``/``governance_engines``
    and below ``governance_services``.  The kernel never imports from here.

Failure modes:
    - ``FileNotFoundError`` -- the configuration set directory or one of
      its required files is missing.
    - ``ConfigurationError`` -- validation failed; the message lists every
      error.

Audit relevance:
    Every successful load emits a ``GOVERNANCE_CONFIG_TRACE`` log entry
    with the set name, checksum and role/workflow counts.
"""

from __future__ import annotations

import logging
from pathlib import Path

from governance_config.loader import load_configuration_set
from governance_config.schema import (
    EngineSettings,
    GovernanceConfiguration,
    HierarchyRulesDef,
)
from governance_config.validator import ConfigValidationResult, validate_configuration
from governance_kernel.exceptions import ConfigurationError

_logger = logging.getLogger("governance.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_SET = "default"


def load_configuration(
    config_dir: Path | str | None = None,
    set_name: str = DEFAULT_SET,
) -> GovernanceConfiguration:
    """Load and validate one configuration set.

    Args:
        config_dir: Either a directory of sets (``<config_dir>/<set_name>``)
            or a set directory itself (holding ``roles.yaml``).  Defaults
            to the packaged ``governance_config/sets``.
        set_name: Which set to load from a sets directory.

    Returns:
        The validated ``GovernanceConfiguration``.

    Raises:
        FileNotFoundError: no such configuration set.
        ConfigurationError: validation errors.
    """
    base = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    set_dir = base if (base / "roles.yaml").exists() else base / set_name
    if not set_dir.is_dir():
        raise FileNotFoundError(f"No configuration set at {set_dir}")

    config = load_configuration_set(set_dir)

    validation = validate_configuration(config)
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"detail": warning})
    if not validation.is_valid:
        raise ConfigurationError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )

    _logger.info(
        "GOVERNANCE_CONFIG_TRACE",
        extra={
            "trace_type": "GOVERNANCE_CONFIG_TRACE",
            "config_set": config.name,
            "checksum": config.checksum,
            "role_count": len(config.roles),
            "workflow_count": len(config.workflows),
            "condition_mode": config.settings.condition_mode.value,
        },
    )
    return config


__all__ = [
    "ConfigValidationResult",
    "EngineSettings",
    "GovernanceConfiguration",
    "HierarchyRulesDef",
    "load_configuration",
    "validate_configuration",
]
