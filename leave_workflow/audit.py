"""
Audit trail and transition events.

Every accepted decision appends an ``AuditEntry`` to the request it changed
and is published as a ``TransitionEvent``. Notification delivery lives
outside this package; it subscribes to the event bus.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from leave_workflow.models import AuditEntry, Decision, LeaveRequest, LeaveStatus, Role

logger = logging.getLogger("leave_workflow.audit")


def record_decision(
    request: LeaveRequest,
    role: Role,
    decision: Decision,
    status_before: LeaveStatus,
    timestamp: datetime,
    by: str | None = None,
    comment: str | None = None,
) -> AuditEntry:
    """Append an audit entry for an accepted decision to ``request``."""
    entry = AuditEntry(
        role=role,
        decision=decision,
        by=by,
        timestamp=timestamp,
        comment=comment,
        status_before=status_before,
        status_after=request.status,
    )
    request.audit_trail.append(entry)

    logger.info(
        "[AUDIT] request=%s role=%s decision=%s by=%s status=%s->%s",
        request.id,
        role.value,
        decision.value,
        by or "-",
        status_before.value,
        request.status.value,
    )
    return entry


@dataclass(frozen=True)
class TransitionEvent:
    request_id: str
    employee_id: str
    role: Role
    decision: Decision
    previous_status: LeaveStatus
    status: LeaveStatus
    next_role: Role | None
    occurred_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


Subscriber = Callable[[TransitionEvent], None]


class EventBus:
    """
    In-process fan-out of transition events.

    Delivery is fire-and-forget: a failing subscriber is logged and skipped,
    it never undoes or blocks the decision that produced the event.
    """

    def __init__(self):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register ``subscriber``; returns a callable that unsubscribes it."""
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, event: TransitionEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)

        for subscriber in subscribers:
            try:
                subscriber(event)
            except Exception:
                logger.exception(
                    f"Transition subscriber {subscriber!r} failed for request {event.request_id}"
                )
