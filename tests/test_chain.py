"""
Tests for the approval chain engine.
"""

from datetime import datetime, timezone

import pytest

from leave_workflow.chain import (
    DecisionMeta,
    Settlement,
    apply_decision,
    awaiting_role,
    build_chain,
    can_act,
    current_step,
    derive_status,
    scan_pending_index,
)
from leave_workflow.errors import StepNotActionableError
from leave_workflow.models import (
    Decision,
    LeaveCategory,
    LeaveStatus,
    Role,
    StepStatus,
)

AT = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)

CHAINS = [
    [Role.HOD],
    [Role.HOD, Role.HR],
    [Role.HOD, Role.DEAN, Role.HR],
    [Role.HOD, Role.VC, Role.PRESIDENT],
]


def _approve_through(request, count):
    for step in request.approval_chain[:count]:
        request = apply_decision(request, step.role, Decision.APPROVE, DecisionMeta(at=AT))
    return request


class TestTurnTaking:
    """Only the role at the cursor may act."""

    def test_first_role_acts_first(self, make_request):
        request = make_request(leave_type="sick")

        assert can_act(request, Role.HOD) is True
        assert can_act(request, Role.DEAN) is False
        assert can_act(request, Role.HR) is False
        assert awaiting_role(request) == Role.HOD

    def test_role_outside_chain_never_acts(self, make_request):
        request = make_request(leave_type="sick")
        assert not can_act(request, Role.PRESIDENT)

    def test_out_of_turn_raises(self, make_request):
        request = make_request(leave_type="sick")

        with pytest.raises(StepNotActionableError, match="awaiting hod"):
            apply_decision(request, Role.DEAN, Decision.APPROVE)

    def test_terminal_request_has_no_turn(self, make_request):
        request = _approve_through(make_request(leave_type="sick"), 3)

        assert request.status == LeaveStatus.APPROVED
        assert current_step(request) is None
        assert not any(can_act(request, role) for role in Role)

    def test_cursor_matches_scan(self, make_request):
        """The cursor always lands on the first pending step after the approved prefix."""
        request = make_request(leave_type="medical", employee_id="e3")
        for _ in range(len(request.approval_chain)):
            assert scan_pending_index(request) == request.current_step_index
            request = apply_decision(request, awaiting_role(request), Decision.APPROVE)
        assert scan_pending_index(request) is None


class TestApproval:
    def test_approve_forwards(self, make_request):
        request = make_request(leave_type="sick")
        meta = DecisionMeta(by="Dr. HOD", comment="ok", at=AT)

        updated = apply_decision(request, Role.HOD, Decision.APPROVE, meta)

        assert updated.status == LeaveStatus.FORWARDED
        assert updated.current_step_index == 1
        step = updated.approval_chain[0]
        assert step.status == StepStatus.APPROVED
        assert step.by == "Dr. HOD"
        assert step.comment == "ok"
        assert step.date == AT
        assert awaiting_role(updated) == Role.DEAN

    def test_input_not_mutated(self, make_request):
        request = make_request(leave_type="sick")
        before = request.model_dump()

        apply_decision(request, Role.HOD, Decision.APPROVE)

        assert request.model_dump() == before

    @pytest.mark.parametrize("roles", CHAINS)
    def test_last_approval_completes(self, make_request, roles):
        request = _approve_through(make_request(chain=roles), len(roles))

        assert request.status == LeaveStatus.APPROVED
        assert request.current_step_index == len(roles)
        assert all(s.status == StepStatus.APPROVED for s in request.approval_chain)

    def test_settlement_recorded_on_request_and_step(self, make_request):
        request = make_request(leave_type="medical", employee_id="e3", days=5)
        request = _approve_through(request, 2)
        meta = DecisionMeta(at=AT, settlement=Settlement(3, 2, LeaveCategory.MEDICAL_PAID))

        updated = apply_decision(request, Role.PRESIDENT, Decision.APPROVE, meta)

        assert (updated.paid_days, updated.unpaid_days) == (3, 2)
        assert updated.leave_category == LeaveCategory.MEDICAL_PAID
        step = updated.approval_chain[2]
        assert (step.paid_days, step.unpaid_days, step.leave_category) == (
            3,
            2,
            LeaveCategory.MEDICAL_PAID,
        )

    def test_settlement_is_fixed_once(self, make_request):
        request = make_request(leave_type="sick", days=3)
        request = apply_decision(request, Role.HOD, Decision.APPROVE)
        request = apply_decision(
            request, Role.DEAN, Decision.APPROVE, DecisionMeta(settlement=Settlement(3, 0))
        )

        with pytest.raises(StepNotActionableError, match="already fixed"):
            apply_decision(
                request, Role.HR, Decision.APPROVE, DecisionMeta(settlement=Settlement(2, 1))
            )


class TestRejection:
    """A rejection at any position ends the chain."""

    @pytest.mark.parametrize(
        "roles,position",
        [(roles, i) for roles in CHAINS for i in range(len(roles))],
    )
    def test_reject_short_circuits(self, make_request, roles, position):
        request = _approve_through(make_request(chain=roles), position)
        rejecting = roles[position]

        updated = apply_decision(request, rejecting, Decision.REJECT, DecisionMeta(at=AT))

        assert updated.status == LeaveStatus.REJECTED
        assert updated.approval_chain[position].status == StepStatus.REJECTED
        # Steps after the rejection stay pending and can never act
        for later in updated.approval_chain[position + 1 :]:
            assert later.status == StepStatus.PENDING
        assert not any(can_act(updated, role) for role in Role)
        assert derive_status(updated.approval_chain) == LeaveStatus.REJECTED

    def test_rejected_step_cannot_be_revisited(self, make_request):
        request = make_request(leave_type="sick")
        rejected = apply_decision(request, Role.HOD, Decision.REJECT)

        with pytest.raises(StepNotActionableError, match="Rejected"):
            apply_decision(rejected, Role.HOD, Decision.APPROVE)


class TestMonotonicity:
    def test_step_statuses_never_regress(self, make_request):
        request = make_request(chain=[Role.HOD, Role.DEAN, Role.HR])
        seen = []
        for _ in range(3):
            request = apply_decision(request, awaiting_role(request), Decision.APPROVE)
            seen.append([s.status for s in request.approval_chain])

        for earlier, later in zip(seen, seen[1:]):
            for a, b in zip(earlier, later):
                assert not (a == StepStatus.APPROVED and b != StepStatus.APPROVED)


class TestDeriveStatus:
    def test_all_pending(self):
        assert derive_status(build_chain(["hod", "hr"])) == LeaveStatus.PENDING

    def test_partial(self):
        chain = build_chain(["hod", "hr"])
        chain[0].status = StepStatus.APPROVED
        assert derive_status(chain) == LeaveStatus.FORWARDED

    def test_all_approved(self):
        chain = build_chain(["hod", "hr"])
        for step in chain:
            step.status = StepStatus.APPROVED
        assert derive_status(chain) == LeaveStatus.APPROVED

    def test_status_agrees_with_engine(self, make_request):
        request = make_request(leave_type="sick")
        for _ in range(3):
            request = apply_decision(request, awaiting_role(request), Decision.APPROVE)
            assert derive_status(request.approval_chain) == request.status


class TestBuildChain:
    def test_fresh_chain_all_pending(self):
        chain = build_chain(["hod", Role.VC, "president"])

        assert [s.role for s in chain] == [Role.HOD, Role.VC, Role.PRESIDENT]
        assert all(s.status == StepStatus.PENDING for s in chain)
