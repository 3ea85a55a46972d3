"""
Workflow error taxonomy.

Business-rule failures are returned as values, never raised: the caller
gets a ``DecisionResult`` carrying either the updated request or the list
of errors that blocked it. Exceptions are reserved for broken invariants
(acting on a step that is not pending, a lost optimistic-concurrency race).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from leave_workflow.models import LeaveRequest, LeaveStatus, LeaveType, Role


@dataclass(frozen=True)
class WorkflowError:
    """Base for all error values."""

    code: ClassVar[str] = "workflow_error"
    recoverable: ClassVar[bool] = True

    @property
    def message(self) -> str:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        data = {"code": self.code, "message": self.message, "recoverable": self.recoverable}
        for key, value in self.__dict__.items():
            data[key] = value.value if hasattr(value, "value") else value
        return data


@dataclass(frozen=True)
class NotFound(WorkflowError):
    code: ClassVar[str] = "not_found"
    recoverable: ClassVar[bool] = False

    entity: str
    entity_id: str

    @property
    def message(self) -> str:
        return f"{self.entity.capitalize()} {self.entity_id} not found."


@dataclass(frozen=True)
class NotYourTurn(WorkflowError):
    code: ClassVar[str] = "not_your_turn"

    role: Role
    status: LeaveStatus
    awaiting: Role | None = None

    @property
    def message(self) -> str:
        if self.status.is_terminal:
            return f"No action available: request is already {self.status.value}."
        if self.awaiting is None:
            return f"No action available for {self.role.value}."
        return (
            f"No action available for {self.role.value}: "
            f"request is awaiting {self.awaiting.value}."
        )


@dataclass(frozen=True)
class Ineligible(WorkflowError):
    code: ClassVar[str] = "ineligible"

    reason: str

    @property
    def message(self) -> str:
        return f"Cannot approve: {self.reason}"


@dataclass(frozen=True)
class DaysMismatch(WorkflowError):
    code: ClassVar[str] = "days_mismatch"

    paid_days: int
    unpaid_days: int
    required_days: int

    @property
    def actual_days(self) -> int:
        return self.paid_days + self.unpaid_days

    @property
    def message(self) -> str:
        if self.paid_days < 0 or self.unpaid_days < 0:
            return (
                f"Paid and unpaid days must not be negative "
                f"(got {self.paid_days} + {self.unpaid_days})."
            )
        return (
            f"Days don't match: {self.paid_days} + {self.unpaid_days} = "
            f"{self.actual_days}, but leave is {self.required_days} days."
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["actual_days"] = self.actual_days
        return data


@dataclass(frozen=True)
class MissingCategory(WorkflowError):
    code: ClassVar[str] = "missing_category"

    leave_type: LeaveType

    @property
    def message(self) -> str:
        return (
            f"Select a classification for this {self.leave_type.value} leave "
            f"(medical-paid or medical-unpaid)."
        )


@dataclass(frozen=True)
class MissingSettlement(WorkflowError):
    """Final approval of a paid leave whose split was never fixed."""

    code: ClassVar[str] = "missing_settlement"
    recoverable: ClassVar[bool] = False

    leave_type: LeaveType
    settled_by: Role

    @property
    def message(self) -> str:
        return (
            f"Cannot approve: paid/unpaid days for this {self.leave_type.value} leave "
            f"were never set by {self.settled_by.value}."
        )


@dataclass(frozen=True)
class InvalidApplication(WorkflowError):
    code: ClassVar[str] = "invalid_application"

    reason: str

    @property
    def message(self) -> str:
        return self.reason


@dataclass
class DecisionResult:
    """Outcome of a workflow operation: a request, or the errors that blocked it."""

    request: LeaveRequest | None = None
    errors: tuple[WorkflowError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error(self) -> WorkflowError | None:
        return self.errors[0] if self.errors else None

    @classmethod
    def success(cls, request: LeaveRequest) -> DecisionResult:
        return cls(request=request)

    @classmethod
    def failure(cls, *errors: WorkflowError) -> DecisionResult:
        return cls(errors=tuple(errors))


class StepNotActionableError(RuntimeError):
    """An approval step was acted on while it was not the pending turn."""

    def __init__(self, request_id: str, role: Role, detail: str):
        super().__init__(f"Request {request_id}: step for {role.value} is not actionable ({detail})")
        self.request_id = request_id
        self.role = role


class VersionConflictError(RuntimeError):
    """A save lost an optimistic-concurrency race."""

    def __init__(self, request_id: str, expected: int, actual: int):
        super().__init__(
            f"Request {request_id} changed concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.request_id = request_id
        self.expected = expected
        self.actual = actual
