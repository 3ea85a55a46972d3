"""
Tests for the in-memory leave repository and request model invariants.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from data.leave_policies import get_seed_leaves
from leave_workflow.errors import VersionConflictError
from leave_workflow.models import LeaveRequest, LeaveStatus
from leave_workflow.repository import InMemoryLeaveRepository


class TestInMemoryLeaveRepository:
    def test_get_returns_private_copy(self, repository, make_request):
        repository.add(make_request(request_id="r1"))

        copy = repository.get("r1")
        copy.status = LeaveStatus.REJECTED

        assert repository.get("r1").status == LeaveStatus.PENDING

    def test_duplicate_add_rejected(self, repository, make_request):
        repository.add(make_request(request_id="r1"))
        with pytest.raises(ValueError):
            repository.add(make_request(request_id="r1"))

    def test_save_bumps_version(self, repository, make_request):
        repository.add(make_request(request_id="r1"))
        request = repository.get("r1")

        saved = repository.save(request, expected_version=0)

        assert saved.version == 1
        assert repository.get("r1").version == 1

    def test_stale_save_conflicts(self, repository, make_request):
        repository.add(make_request(request_id="r1"))
        first = repository.get("r1")
        second = repository.get("r1")
        repository.save(first, expected_version=first.version)

        with pytest.raises(VersionConflictError) as exc_info:
            repository.save(second, expected_version=second.version)

        assert exc_info.value.actual == 1

    def test_save_unknown_raises(self, repository, make_request):
        with pytest.raises(KeyError):
            repository.save(make_request(request_id="r1"), expected_version=0)

    def test_from_records_and_counts(self):
        repository = InMemoryLeaveRepository.from_records(get_seed_leaves(date(2026, 3, 2)))

        assert len(repository) == 3
        assert repository.count_by_status() == {"Approved": 2, "Pending": 1}
        assert [r.id for r in repository.list_requests(status=LeaveStatus.PENDING)] == ["l3"]


class TestLeaveRequestDays:
    def test_days_derived_inclusive(self):
        request = LeaveRequest(
            id="r", employee_id="e1", type="annual", start_date="2026-03-09", end_date="2026-03-09"
        )
        assert request.days == 1

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            LeaveRequest(
                id="r",
                employee_id="e1",
                type="annual",
                start_date="2026-03-09",
                end_date="2026-03-08",
            )

    def test_conflicting_days_rejected(self):
        with pytest.raises(ValidationError):
            LeaveRequest(
                id="r",
                employee_id="e1",
                type="annual",
                start_date="2026-03-09",
                end_date="2026-03-11",
                days=5,
            )
