"""
Pytest fixtures for the governance test suite.

Provides:
- Structured logging configured once per session, plus a log capture fixture
- A DeterministicClock and the packaged default configuration set
- A fully wired GovernanceEngine over in-memory repositories
- Actor fixtures holding the role combinations each workflow step needs
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from governance_config import load_configuration
from governance_kernel.domain.clock import DeterministicClock
from governance_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from governance_services.audit import InMemoryAuditSink
from governance_services.engine import build_engine
from governance_services.identity import StaticIdentityProvider

T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)

# Employment workflow: draft -> hr_review -> legal_review -> management_approval -> signature
EMPLOYMENT_STEP_ACTORS = (
    ("draft", "creator-1"),
    ("hr_review", "hr-1"),
    ("legal_review", "reviewer-1"),
    ("management_approval", "manager-1"),
    ("signature", "manager-1"),
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture governance logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.workflows.create_instance(...)
            logs = captured_logs()
            assert any(r["message"] == "workflow_instance_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("governance")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(T0)


@pytest.fixture(scope="session")
def default_config():
    return load_configuration()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def identity() -> StaticIdentityProvider:
    return StaticIdentityProvider({
        "creator-1": "Casey Creator",
        "hr-1": "Harper HR",
        "reviewer-1": "Riley Reviewer",
        "manager-1": "Morgan Manager",
        "accountant-1": "Avery Accountant",
    })


@pytest.fixture
def engine(default_config, clock, audit_sink, identity):
    return build_engine(
        default_config,
        clock=clock,
        audit_sink=audit_sink,
        identity=identity,
    )


@pytest.fixture
def actors(engine):
    """Grant every actor the roles its employment workflow step requires."""
    store = engine.store
    store.assign_role("creator-1", "contract_creator", granted_by="admin")
    store.assign_role("hr-1", "hr_staff", granted_by="admin")
    # hr_review also requires contract:review, which hr_staff does not carry.
    store.assign_role("hr-1", "contract_reviewer", granted_by="admin")
    store.assign_role("reviewer-1", "contract_reviewer", granted_by="admin")
    store.assign_role("manager-1", "contract_manager", granted_by="admin")
    store.assign_role("accountant-1", "accounting_staff", granted_by="admin")
    store.assign_role("accountant-1", "contract_reviewer", granted_by="admin")
    return store


@pytest.fixture
def employment_instance(engine, actors):
    return engine.workflows.create_instance(
        "doc-employment-1", "employment_contract", "creator-1",
    )


@pytest.fixture
def approve_through(engine):
    """Approve ``count`` steps of an employment instance in order."""

    def _approve(instance_id: str, count: int):
        result = None
        for step_id, actor_id in EMPLOYMENT_STEP_ACTORS[:count]:
            result = engine.workflows.execute_step(instance_id, step_id, actor_id, "approve")
            assert result, result.reason
        return result

    return _approve
