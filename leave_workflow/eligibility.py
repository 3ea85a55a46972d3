"""
Eligibility rules for leave approval.

These functions are pure: no I/O, no clock reads unless a date is passed
in, no mutation. The HTTP layer calls them to preview whether an approve
button should be offered; the controller calls them again before accepting
any approval, whatever the client showed.
"""

from dataclasses import dataclass
from datetime import date, timedelta

from dateutil import parser
from dateutil.parser import ParserError

from leave_workflow.models import Employee, EmploymentStatus, Gender, LeaveRequest, LeaveType

DEFAULT_MATERNITY_NOTICE_DAYS = 60
DEFAULT_PROBATION_MONTHS = 6


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: str

    def to_dict(self) -> dict:
        return {"eligible": self.eligible, "reason": self.reason}


@dataclass(frozen=True)
class AdvanceNoticeResult:
    valid: bool
    days_in_advance: int
    min_required: int
    reason: str


def check_eligibility(request: LeaveRequest, employee: Employee) -> EligibilityResult:
    """
    Decide whether ``request`` may be approved for ``employee``.

    Only maternity leave is gated here: the employee must be female and
    confirmed (not on probation). Every other leave type passes; type
    specific limits such as balances are enforced elsewhere.
    """
    if request.type != LeaveType.MATERNITY:
        return EligibilityResult(True, f"No eligibility restrictions for {request.type.value} leave")

    return check_maternity_eligibility(employee)


def check_maternity_eligibility(employee: Employee) -> EligibilityResult:
    if employee.gender != Gender.FEMALE:
        return EligibilityResult(False, "Maternity leave is only available for female employees")

    if employee.employment_status != EmploymentStatus.CONFIRMED:
        if employee.probation_end_date:
            return EligibilityResult(
                False,
                "Employee is on probation. Maternity leave becomes available after "
                f"probation ends on {employee.probation_end_date.strftime('%b %d, %Y')}",
            )
        return EligibilityResult(
            False,
            "Maternity leave is not available during probation period. "
            "Only confirmed employees can apply.",
        )

    return EligibilityResult(True, "Employee is eligible for maternity leave")


def validate_advance_notice(
    expected_delivery_date: date | str | None,
    application_date: date | str,
    min_days: int = DEFAULT_MATERNITY_NOTICE_DAYS,
) -> AdvanceNoticeResult:
    """
    Maternity applications must be filed at least ``min_days`` before the
    expected delivery date.
    """
    if not expected_delivery_date:
        return AdvanceNoticeResult(
            False,
            0,
            min_days,
            "Expected delivery date is required for maternity leave application",
        )

    try:
        delivery = _as_date(expected_delivery_date)
        applied = _as_date(application_date)
    except (ParserError, ValueError):
        return AdvanceNoticeResult(
            False, 0, min_days, f"Invalid date: {expected_delivery_date}. Please use YYYY-MM-DD."
        )

    days_in_advance = (delivery - applied).days
    if days_in_advance < min_days:
        return AdvanceNoticeResult(
            False,
            days_in_advance,
            min_days,
            f"Maternity leave requires at least {min_days} days advance notice. "
            f"You have only {days_in_advance} days.",
        )

    return AdvanceNoticeResult(
        True,
        days_in_advance,
        min_days,
        f"Valid application with {days_in_advance} days advance notice",
    )


def calculate_probation_end_date(
    join_date: date | str, probation_months: int = DEFAULT_PROBATION_MONTHS
) -> date:
    """Probation months are counted as 30-day blocks from the join date."""
    return _as_date(join_date) + timedelta(days=probation_months * 30)


def _as_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return parser.isoparse(value).date()
