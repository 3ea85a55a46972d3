"""
Paid/unpaid reconciliation.

The final financial approver for a leave type splits the requested days
into paid and unpaid portions; payroll reads that split once the request is
approved, so it has to add up exactly. Medical leave must additionally be
classified before it can be approved.
"""

from data.leave_policies import get_final_financial_approver, requires_category
from leave_workflow.errors import DaysMismatch, MissingCategory, WorkflowError
from leave_workflow.models import LeaveCategory, LeaveRequest, LeaveType, Role


def is_final_financial_approver(leave_type: LeaveType, role: Role) -> bool:
    """Whether ``role`` reconciles paid/unpaid days for ``leave_type``."""
    return get_final_financial_approver(leave_type.value) == role.value


def validate_split(days: int, paid_days: int | None, unpaid_days: int | None) -> DaysMismatch | None:
    """
    Check that ``paid_days + unpaid_days == days`` with both parts non-negative.

    A missing part counts as zero. Over- and under-allocation produce the
    same error, reporting the actual total against the required days.
    """
    paid = paid_days or 0
    unpaid = unpaid_days or 0

    if paid < 0 or unpaid < 0 or paid + unpaid != days:
        return DaysMismatch(paid_days=paid, unpaid_days=unpaid, required_days=days)
    return None


def validate_category(leave_type: LeaveType, leave_category: LeaveCategory | None) -> MissingCategory | None:
    if requires_category(leave_type.value) and leave_category is None:
        return MissingCategory(leave_type=leave_type)
    return None


def reconcile(
    request: LeaveRequest,
    paid_days: int | None,
    unpaid_days: int | None,
    leave_category: LeaveCategory | None,
) -> list[WorkflowError]:
    """
    Run every settlement check for ``request`` and return all failures.

    The split and the category are checked independently so a bad split
    never hides a missing category (or the reverse).
    """
    errors: list[WorkflowError] = []

    mismatch = validate_split(request.days, paid_days, unpaid_days)
    if mismatch:
        errors.append(mismatch)

    missing = validate_category(request.type, leave_category)
    if missing:
        errors.append(missing)

    return errors
