"""
Approval chain engine.

A request's ``approval_chain`` is an ordered list of role-scoped steps and
``current_step_index`` points at the step whose turn it is. Steps are only
ever visited left to right; a rejection ends the walk and the request status
alone records that later steps will never run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from leave_workflow.errors import StepNotActionableError
from leave_workflow.models import (
    ACTIONABLE_STATUSES,
    ApprovalStep,
    Decision,
    LeaveCategory,
    LeaveRequest,
    LeaveStatus,
    Role,
    StepStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settlement:
    """Paid/unpaid split fixed by the final financial approver."""

    paid_days: int
    unpaid_days: int
    leave_category: LeaveCategory | None = None


@dataclass(frozen=True)
class DecisionMeta:
    by: str | None = None
    comment: str | None = None
    at: datetime | None = None
    settlement: Settlement | None = None


def current_step(request: LeaveRequest) -> ApprovalStep | None:
    """The step whose turn it is, or None once the request can no longer move."""
    if request.status not in ACTIONABLE_STATUSES:
        return None
    if request.current_step_index >= len(request.approval_chain):
        return None
    return request.approval_chain[request.current_step_index]


def awaiting_role(request: LeaveRequest) -> Role | None:
    step = current_step(request)
    return step.role if step else None


def can_act(request: LeaveRequest, role: Role) -> bool:
    """
    True only when it is ``role``'s turn: the request is Pending/Forwarded,
    the cursor step belongs to ``role`` and is pending, and every earlier
    step has approved.
    """
    step = current_step(request)
    if step is None or step.role != role or step.status != StepStatus.PENDING:
        return False

    earlier = request.approval_chain[: request.current_step_index]
    return all(s.status == StepStatus.APPROVED for s in earlier)


def apply_decision(
    request: LeaveRequest,
    role: Role,
    decision: Decision,
    meta: DecisionMeta | None = None,
) -> LeaveRequest:
    """
    Record ``role``'s decision and return the updated request.

    The input is left untouched. Approving the last step makes the request
    Approved; approving any other step forwards it to the next role.

    Raises:
        StepNotActionableError: it is not ``role``'s turn, or a settlement is
            supplied for a request whose split is already fixed.
    """
    role = Role(role)
    decision = Decision(decision)
    meta = meta or DecisionMeta()

    if not can_act(request, role):
        raise StepNotActionableError(request.id, role, _not_actionable_detail(request, role))

    updated = request.model_copy(deep=True)
    index = updated.current_step_index
    step = updated.approval_chain[index]

    step.by = meta.by
    step.date = meta.at or datetime.now(timezone.utc)
    step.comment = meta.comment or None

    if decision == Decision.REJECT:
        step.status = StepStatus.REJECTED
        updated.status = LeaveStatus.REJECTED
        logger.info(f"Request {request.id}: rejected by {role.value} at step {index}")
        return updated

    if meta.settlement is not None:
        if request.has_settlement:
            raise StepNotActionableError(request.id, role, "paid/unpaid split is already fixed")
        _fix_settlement(updated, step, meta.settlement)

    step.status = StepStatus.APPROVED
    updated.current_step_index = index + 1

    if updated.current_step_index == len(updated.approval_chain):
        updated.status = LeaveStatus.APPROVED
        logger.info(f"Request {request.id}: final approval by {role.value}")
    else:
        updated.status = LeaveStatus.FORWARDED
        next_role = updated.approval_chain[updated.current_step_index].role
        logger.info(f"Request {request.id}: approved by {role.value}, forwarded to {next_role.value}")

    return updated


def _fix_settlement(request: LeaveRequest, step: ApprovalStep, settlement: Settlement) -> None:
    request.paid_days = step.paid_days = settlement.paid_days
    request.unpaid_days = step.unpaid_days = settlement.unpaid_days
    if settlement.leave_category is not None:
        request.leave_category = step.leave_category = settlement.leave_category


def _not_actionable_detail(request: LeaveRequest, role: Role) -> str:
    if request.status not in ACTIONABLE_STATUSES:
        return f"request is {request.status.value}"
    own = [s for s in request.approval_chain if s.role == role]
    if not own:
        return "role is not part of this chain"
    if all(s.status != StepStatus.PENDING for s in own):
        return f"step already {own[-1].status.value}"
    waiting = awaiting_role(request)
    return f"awaiting {waiting.value}" if waiting else "out of turn"


def scan_pending_index(request: LeaveRequest) -> int | None:
    """
    Locate the turn by scanning the chain instead of trusting the cursor:
    the first pending step, provided every step before it approved.
    Returns None for rejected or fully approved chains.
    """
    for index, step in enumerate(request.approval_chain):
        if step.status == StepStatus.REJECTED:
            return None
        if step.status == StepStatus.PENDING:
            return index
    return None


def derive_status(chain: list[ApprovalStep]) -> LeaveStatus:
    """Request status implied by the step statuses alone."""
    statuses = [s.status for s in chain]
    if StepStatus.REJECTED in statuses:
        return LeaveStatus.REJECTED
    if statuses and all(s == StepStatus.APPROVED for s in statuses):
        return LeaveStatus.APPROVED
    if StepStatus.APPROVED in statuses:
        return LeaveStatus.FORWARDED
    return LeaveStatus.PENDING


def build_chain(roles: list[Role | str]) -> list[ApprovalStep]:
    """Fresh all-pending chain for the given role order."""
    return [ApprovalStep(role=Role(role)) for role in roles]
