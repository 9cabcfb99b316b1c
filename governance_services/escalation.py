"""
EscalationScanner -- In-process polling escalator.

Contract:
    Periodically scans workflow instances, asks the pure
    ``escalation_reason()`` rule whether each is due, and escalates due
    ones through ``WorkflowInstanceManager.escalate_instance``.

Architecture: governance_services.  Uses governance_engines.escalation for
    the decision and the manager for the locked, versioned transition.

Invariants enforced:
    - All timestamps from the injected Clock.
    - Escalation never runs inside ``execute_step``'s call path.
    - Graceful shutdown (respects stop signal between instances).
"""

from __future__ import annotations

import threading

from governance_engines.escalation import escalation_reason
from governance_kernel.domain.clock import Clock, SystemClock
from governance_kernel.domain.repositories import WorkflowInstanceRepository
from governance_kernel.exceptions import OptimisticLockError
from governance_kernel.logging_config import get_logger
from governance_services.workflow_instance_manager import WorkflowInstanceManager

logger = get_logger("services.escalation")


class EscalationScanner:
    """Background escalation of stalled workflow instances.

    Non-goals:
        - NOT a distributed scheduler (no leader election).
        - Sends no notifications; escalation is a state change plus a
          log line and an audit event.
    """

    def __init__(
        self,
        manager: WorkflowInstanceManager,
        repository: WorkflowInstanceRepository,
        clock: Clock | None = None,
        interval_seconds: float = 300.0,
    ):
        self._manager = manager
        self._repository = repository
        self._clock = clock or SystemClock()
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> int:
        """Escalate every due instance (public for testing).

        Returns the number of instances escalated.
        """
        now = self._clock.now()
        escalated = 0
        for instance in self._repository.list():
            if self._stop_event.is_set():
                break
            if instance.is_terminal:
                continue
            definition = self._manager.definition_for(instance)
            if definition is None:
                continue
            reason = escalation_reason(instance, definition, now)
            if reason is None:
                continue
            try:
                result = self._manager.escalate_instance(instance.instance_id, reason)
            except OptimisticLockError:
                logger.exception(
                    "escalation_failed",
                    extra={"instance_id": instance.instance_id},
                )
                continue
            if result:
                escalated += 1

        if escalated:
            logger.info("escalation_tick_completed", extra={"escalated": escalated})
        return escalated

    def start(self) -> None:
        """Start scanning in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="escalation-scanner",
            daemon=True,
        )
        self._thread.start()
        logger.info("escalation_scanner_started", extra={"interval_seconds": self._interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current scan to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("escalation_scanner_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("escalation_tick_exception")
            self._stop_event.wait(timeout=self._interval)
