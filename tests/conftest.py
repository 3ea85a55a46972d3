"""
Pytest configuration and fixtures.
Shared builders for leave requests, stores and the controller.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from data.leave_policies import get_approval_chain, get_seed_leaves
from leave_workflow.chain import build_chain
from leave_workflow.controller import WorkflowController
from leave_workflow.employee_store import SnowflakeEmployeeStore
from leave_workflow.models import LeaveRequest, LeaveType
from leave_workflow.repository import InMemoryLeaveRepository

FIXED_NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
LEAVE_START = date(2026, 3, 9)


@pytest.fixture
def make_request():
    """Build a fresh Pending request; the chain comes from the leave-type policy."""
    counter = {"n": 0}

    def _make(
        leave_type="sick",
        employee_id="e4",
        days=3,
        chain=None,
        request_id=None,
        **fields,
    ) -> LeaveRequest:
        counter["n"] += 1
        leave_type = LeaveType(leave_type)
        roles = chain if chain is not None else get_approval_chain(leave_type.value)
        return LeaveRequest(
            id=request_id or f"r{counter['n']}",
            employee_id=employee_id,
            type=leave_type,
            start_date=LEAVE_START,
            end_date=LEAVE_START + timedelta(days=days - 1),
            approval_chain=build_chain(roles),
            **fields,
        )

    return _make


@pytest.fixture
def employees():
    """Employee store serving the bundled mock employees."""
    return SnowflakeEmployeeStore(use_mock=True)


@pytest.fixture
def repository():
    return InMemoryLeaveRepository()


@pytest.fixture
def add_request(repository, make_request):
    """Create a request and store it."""

    def _add(**kwargs) -> LeaveRequest:
        return repository.add(make_request(**kwargs))

    return _add


@pytest.fixture
def controller(repository, employees):
    return WorkflowController(
        repository=repository,
        employees=employees,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def seeded_controller(employees):
    repository = InMemoryLeaveRepository.from_records(get_seed_leaves(FIXED_NOW.date()))
    return WorkflowController(repository=repository, employees=employees, clock=lambda: FIXED_NOW)


@pytest.fixture
def test_client(seeded_controller):
    """FastAPI test client wired to a fresh seeded controller."""
    from leave_workflow.main import app, get_controller

    app.dependency_overrides[get_controller] = lambda: seeded_controller
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fixed_now():
    """The instant the controller fixtures treat as now."""
    return FIXED_NOW
