"""
Domain model for the leave approval workflow.

Closed value sets are ``str`` enums so they serialize straight to JSON and
compare equal to their wire values. Entities are pydantic models; the
workflow never mutates a stored instance in place, it works on deep copies
and hands the result to the repository.
"""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"
    CASUAL = "casual"
    MATERNITY = "maternity"
    MEDICAL = "medical"
    UNPAID = "unpaid"
    MARRIAGE = "marriage"
    HAJJ = "hajj"
    UMRAH = "umrah"
    MSPHD = "msphd"
    OTHER = "other"


class LeaveStatus(str, Enum):
    PENDING = "Pending"
    FORWARDED = "Forwarded"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    WITHDRAWN = "Withdrawn"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({LeaveStatus.APPROVED, LeaveStatus.REJECTED, LeaveStatus.WITHDRAWN})
ACTIONABLE_STATUSES = frozenset({LeaveStatus.PENDING, LeaveStatus.FORWARDED})


class StepStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(str, Enum):
    HOD = "hod"
    DEAN = "dean"
    VC = "vc"
    HR = "hr"
    PRESIDENT = "president"


class LeaveCategory(str, Enum):
    MEDICAL_PAID = "medical-paid"
    MEDICAL_UNPAID = "medical-unpaid"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class Gender(str, Enum):
    FEMALE = "female"
    MALE = "male"
    OTHER = "other"


class EmploymentStatus(str, Enum):
    PROBATION = "probation"
    CONFIRMED = "confirmed"


class Employee(BaseModel):
    """Read-only employee record supplied by the employee store."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    department: str | None = None
    gender: Gender
    employment_status: EmploymentStatus
    join_date: date | None = None
    probation_end_date: date | None = None
    leave_balance: dict[str, float] = Field(default_factory=dict)


class Document(BaseModel):
    """Supporting document attached to an application (metadata only)."""

    id: str
    name: str
    url: str | None = None
    size: int | None = None
    uploaded_at: date | None = None


class ApprovalStep(BaseModel):
    role: Role
    status: StepStatus = StepStatus.PENDING
    by: str | None = None
    date: datetime | None = None
    comment: str | None = None
    # Recorded only on the final financial approver's step
    paid_days: int | None = None
    unpaid_days: int | None = None
    leave_category: LeaveCategory | None = None


class AuditEntry(BaseModel):
    """One accepted decision on a request."""

    model_config = ConfigDict(frozen=True)

    role: Role
    decision: Decision
    by: str | None = None
    timestamp: datetime
    comment: str | None = None
    status_before: LeaveStatus
    status_after: LeaveStatus


class LeaveRequest(BaseModel):
    """
    A leave application and its position in the approval chain.

    ``days`` is always the inclusive day count of ``start_date`` ..
    ``end_date``; passing a conflicting value is a construction error.
    ``current_step_index`` points at the step whose turn it is and equals
    ``len(approval_chain)`` once every step has approved.
    """

    id: str
    employee_id: str
    type: LeaveType
    start_date: date
    end_date: date
    days: int = 0
    status: LeaveStatus = LeaveStatus.PENDING
    approval_chain: list[ApprovalStep] = Field(default_factory=list)
    current_step_index: int = 0
    paid_days: int | None = None
    unpaid_days: int | None = None
    leave_category: LeaveCategory | None = None
    reason: str | None = None
    documents: list[Document] = Field(default_factory=list)
    applied_on: date | None = None
    expected_delivery_date: date | None = None
    version: int = 0
    audit_trail: list[AuditEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _derive_days(self):
        span = (self.end_date - self.start_date).days + 1
        if span <= 0:
            raise ValueError(
                f"end_date {self.end_date} is before start_date {self.start_date}"
            )
        if self.days and self.days != span:
            raise ValueError(f"days={self.days} does not match the {span}-day date range")
        self.days = span
        return self

    @property
    def has_settlement(self) -> bool:
        return self.paid_days is not None or self.unpaid_days is not None
