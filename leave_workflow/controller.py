"""
Workflow controller.

The one write path for leave requests. Both review contexts (general leave
reviewed by HOD/Dean/HR, medical leave reviewed by HOD/VC/President) go
through ``submit_decision``; they differ only in which roles and leave
types they show, never in the rules applied here.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date, datetime, timezone

from pydantic import BaseModel, Field

from data.leave_policies import (
    get_approval_chain,
    get_final_financial_approver,
    requires_category,
    requires_documents,
)
from leave_workflow.audit import EventBus, TransitionEvent, record_decision
from leave_workflow.chain import (
    DecisionMeta,
    Settlement,
    apply_decision,
    awaiting_role,
    build_chain,
    can_act,
)
from leave_workflow.config import settings
from leave_workflow.eligibility import (
    EligibilityResult,
    check_eligibility,
    check_maternity_eligibility,
    validate_advance_notice,
)
from leave_workflow.employee_store import EmployeeStore
from leave_workflow.errors import (
    DecisionResult,
    Ineligible,
    InvalidApplication,
    MissingSettlement,
    NotFound,
    NotYourTurn,
    VersionConflictError,
)
from leave_workflow.models import (
    AuditEntry,
    Decision,
    Document,
    LeaveCategory,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    Role,
)
from leave_workflow.observability import trace_span
from leave_workflow.reconciliation import is_final_financial_approver, reconcile
from leave_workflow.repository import LeaveRepository

logger = logging.getLogger(__name__)


class DecisionPayload(BaseModel):
    """What an approver submits alongside approve/reject."""

    by: str | None = Field(None, description="Name of the acting approver")
    comment: str | None = None
    paid_days: int | None = None
    unpaid_days: int | None = None
    leave_category: LeaveCategory | None = None

    @property
    def carries_split(self) -> bool:
        return (
            self.paid_days is not None
            or self.unpaid_days is not None
            or self.leave_category is not None
        )


class LeaveApplication(BaseModel):
    """An employee's request for leave, before any chain exists."""

    employee_id: str
    type: LeaveType
    start_date: date
    end_date: date
    reason: str | None = None
    documents: list[Document] = Field(default_factory=list)
    expected_delivery_date: date | None = None


class ActionPreview(BaseModel):
    """What a role may do on a request right now."""

    request_id: str
    role: Role
    can_act: bool
    can_approve: bool
    can_reject: bool
    awaiting: Role | None
    eligibility: dict
    requires_split: bool
    requires_category: bool


class WorkflowController:
    """
    Orchestrates eligibility, reconciliation and the chain engine.

    Each decision is an atomic read-modify-write: it runs under the
    repository's per-record lock and saves with an optimistic version check.
    A lost race re-runs the whole decision against fresh state, where the
    stale caller is turned away by ``can_act``.
    """

    def __init__(
        self,
        repository: LeaveRepository,
        employees: EmployeeStore,
        events: EventBus | None = None,
        clock: Callable[[], datetime] | None = None,
        max_conflict_retries: int | None = None,
    ):
        self.repository = repository
        self.employees = employees
        self.events = events or EventBus()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.max_conflict_retries = (
            settings.max_conflict_retries if max_conflict_retries is None else max_conflict_retries
        )

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def submit_decision(
        self,
        request_id: str,
        role: Role | str,
        decision: Decision | str,
        payload: DecisionPayload | None = None,
    ) -> DecisionResult:
        """
        Apply ``role``'s approve/reject decision to a request.

        Checks run in order and stop at the first failure: request and
        employee exist, it is ``role``'s turn, the employee is eligible
        (approve only), and the paid/unpaid settlement reconciles (approve by
        the final financial approver only). The last approval of a paid leave
        type is refused while no split is on record. A failed check leaves the
        stored request untouched.
        """
        role = Role(role)
        decision = Decision(decision)
        payload = payload or DecisionPayload()

        with trace_span(
            "submit_decision", request=request_id, role=role.value, decision=decision.value
        ) as span:
            attempts = self.max_conflict_retries + 1
            last_conflict: VersionConflictError | None = None
            for attempt in range(1, attempts + 1):
                try:
                    result, event = self._decide_once(request_id, role, decision, payload)
                except VersionConflictError as e:
                    logger.warning(f"{e}; attempt {attempt}/{attempts}")
                    last_conflict = e
                    continue

                span["outcome"] = "ok" if result.ok else result.error.code
                if event is not None:
                    self.events.publish(event)
                return result

            span["outcome"] = "conflict"
            raise last_conflict

    def _decide_once(
        self, request_id: str, role: Role, decision: Decision, payload: DecisionPayload
    ) -> tuple[DecisionResult, TransitionEvent | None]:
        with self.repository.lock(request_id):
            request = self.repository.get(request_id)
            if request is None:
                return DecisionResult.failure(NotFound("leave request", request_id)), None

            employee = self.employees.get_employee(request.employee_id)
            if employee is None:
                return DecisionResult.failure(NotFound("employee", request.employee_id)), None

            if not can_act(request, role):
                logger.info(
                    f"Request {request_id}: {role.value} attempted {decision.value} "
                    f"out of turn (status={request.status.value})"
                )
                return (
                    DecisionResult.failure(
                        NotYourTurn(role=role, status=request.status, awaiting=awaiting_role(request))
                    ),
                    None,
                )

            settlement = None
            if decision == Decision.APPROVE:
                eligibility = check_eligibility(request, employee)
                if not eligibility.eligible:
                    return DecisionResult.failure(Ineligible(eligibility.reason)), None

                if is_final_financial_approver(request.type, role):
                    errors = reconcile(
                        request, payload.paid_days, payload.unpaid_days, payload.leave_category
                    )
                    if errors:
                        return DecisionResult.failure(*errors), None
                    category = payload.leave_category
                    if category is not None and not requires_category(request.type.value):
                        logger.warning(
                            f"Request {request_id}: ignoring {category.value} classification "
                            f"on {request.type.value} leave"
                        )
                        category = None
                    settlement = Settlement(
                        paid_days=payload.paid_days or 0,
                        unpaid_days=payload.unpaid_days or 0,
                        leave_category=category,
                    )
                elif payload.carries_split:
                    logger.warning(
                        f"Request {request_id}: ignoring paid/unpaid split from {role.value}, "
                        f"not the financial approver for {request.type.value} leave"
                    )

                unsettled = self._unsettled_final_approval(request, settlement)
                if unsettled is not None:
                    logger.error(
                        f"Request {request_id}: final approval by {role.value} refused, "
                        f"no paid/unpaid split on record"
                    )
                    return DecisionResult.failure(unsettled), None

            now = self._clock()
            meta = DecisionMeta(by=payload.by, comment=payload.comment, at=now, settlement=settlement)
            updated = apply_decision(request, role, decision, meta)
            record_decision(
                updated,
                role,
                decision,
                status_before=request.status,
                timestamp=now,
                by=payload.by,
                comment=payload.comment,
            )

            saved = self.repository.save(updated, expected_version=request.version)

        event = TransitionEvent(
            request_id=saved.id,
            employee_id=saved.employee_id,
            role=role,
            decision=decision,
            previous_status=request.status,
            status=saved.status,
            next_role=awaiting_role(saved),
            occurred_at=now,
        )
        return DecisionResult.success(saved), event

    @staticmethod
    def _unsettled_final_approval(
        request: LeaveRequest, settlement: Settlement | None
    ) -> MissingSettlement | None:
        """A paid leave may only complete once its split is on record."""
        if request.current_step_index != len(request.approval_chain) - 1:
            return None
        approver = get_final_financial_approver(request.type.value)
        if approver is None or settlement is not None or request.has_settlement:
            return None
        return MissingSettlement(leave_type=request.type, settled_by=Role(approver))

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_leave(self, application: LeaveApplication) -> DecisionResult:
        """
        Create a Pending request with its policy-defined approval chain.

        Maternity applications must pass the eligibility gate and the advance
        notice rule; medical applications need at least one document.
        """
        with trace_span(
            "submit_leave", employee=application.employee_id, type=application.type.value
        ) as span:
            employee = self.employees.get_employee(application.employee_id)
            if employee is None:
                span["outcome"] = "not_found"
                return DecisionResult.failure(NotFound("employee", application.employee_id))

            if application.end_date < application.start_date:
                span["outcome"] = "invalid"
                return DecisionResult.failure(
                    InvalidApplication("End date must be on or after the start date.")
                )

            today = self._clock().date()

            if application.type == LeaveType.MATERNITY:
                eligibility = check_maternity_eligibility(employee)
                if not eligibility.eligible:
                    span["outcome"] = "ineligible"
                    return DecisionResult.failure(Ineligible(eligibility.reason))

                notice = validate_advance_notice(
                    application.expected_delivery_date,
                    today,
                    settings.maternity_min_notice_days,
                )
                if not notice.valid:
                    span["outcome"] = "invalid"
                    return DecisionResult.failure(InvalidApplication(notice.reason))

            if requires_documents(application.type.value) and not application.documents:
                span["outcome"] = "invalid"
                return DecisionResult.failure(
                    InvalidApplication(
                        f"Please upload supporting documents for {application.type.value} leave."
                    )
                )

            request = LeaveRequest(
                id=f"l-{uuid.uuid4().hex[:12]}",
                employee_id=application.employee_id,
                type=application.type,
                start_date=application.start_date,
                end_date=application.end_date,
                reason=application.reason,
                documents=application.documents,
                expected_delivery_date=application.expected_delivery_date,
                applied_on=today,
                approval_chain=build_chain(get_approval_chain(application.type.value)),
            )
            stored = self.repository.add(request)
            span["outcome"] = "ok"

            logger.info(
                f"Leave request {stored.id} submitted: employee={stored.employee_id} "
                f"type={stored.type.value} days={stored.days} "
                f"chain={'->'.join(s.role.value for s in stored.approval_chain)}"
            )
            return DecisionResult.success(stored)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_request(self, request_id: str) -> DecisionResult:
        request = self.repository.get(request_id)
        if request is None:
            return DecisionResult.failure(NotFound("leave request", request_id))
        return DecisionResult.success(request)

    def list_requests(
        self,
        status: LeaveStatus | None = None,
        awaiting: Role | None = None,
        employee_id: str | None = None,
    ) -> list[LeaveRequest]:
        requests = self.repository.list_requests(status=status, employee_id=employee_id)
        if awaiting is not None:
            requests = [r for r in requests if awaiting_role(r) == awaiting]
        return requests

    def audit_trail(self, request_id: str) -> list[AuditEntry] | None:
        request = self.repository.get(request_id)
        return None if request is None else list(request.audit_trail)

    def available_actions(self, request_id: str, role: Role | str) -> ActionPreview | NotFound:
        """
        Preview what ``role`` may do on a request, for gating UI actions.

        This is advisory only; ``submit_decision`` re-checks everything.
        """
        role = Role(role)
        request = self.repository.get(request_id)
        if request is None:
            return NotFound("leave request", request_id)

        employee = self.employees.get_employee(request.employee_id)
        if employee is None:
            return NotFound("employee", request.employee_id)

        acting = can_act(request, role)
        eligibility: EligibilityResult = check_eligibility(request, employee)
        reconciles = acting and is_final_financial_approver(request.type, role)

        return ActionPreview(
            request_id=request.id,
            role=role,
            can_act=acting,
            can_approve=acting and eligibility.eligible,
            can_reject=acting,
            awaiting=awaiting_role(request),
            eligibility=eligibility.to_dict(),
            requires_split=reconciles,
            requires_category=reconciles and requires_category(request.type.value),
        )
