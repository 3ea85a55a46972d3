"""
Leave record store.

The workflow only talks to the ``LeaveRepository`` interface: ``get`` hands
out a private copy, ``save`` writes it back with an optimistic version
check, and ``lock`` serializes read-modify-write cycles on one record.
``InMemoryLeaveRepository`` is the bundled implementation; a database-backed
store only has to honour the same three calls.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from leave_workflow.errors import VersionConflictError
from leave_workflow.models import LeaveRequest, LeaveStatus

logger = logging.getLogger(__name__)


class LeaveRepository(Protocol):
    def get(self, request_id: str) -> LeaveRequest | None: ...

    def add(self, request: LeaveRequest) -> LeaveRequest: ...

    def save(self, request: LeaveRequest, expected_version: int) -> LeaveRequest: ...

    def lock(self, request_id: str): ...

    def list_requests(
        self, status: LeaveStatus | None = None, employee_id: str | None = None
    ) -> list[LeaveRequest]: ...

    def count_by_status(self) -> dict[str, int]: ...


class InMemoryLeaveRepository:
    """Thread-safe in-memory store with per-record locks."""

    def __init__(self):
        self._records: dict[str, LeaveRequest] = {}
        self._guard = threading.Lock()
        self._record_locks: dict[str, threading.RLock] = {}

    @classmethod
    def from_records(cls, records: list[dict]) -> InMemoryLeaveRepository:
        """Build a repository from raw record dicts (see ``data.leave_policies``)."""
        repo = cls()
        for record in records:
            repo.add(LeaveRequest.model_validate(record))
        logger.info(f"Seeded leave repository with {len(records)} requests")
        return repo

    def get(self, request_id: str) -> LeaveRequest | None:
        with self._guard:
            stored = self._records.get(request_id)
            return stored.model_copy(deep=True) if stored else None

    def add(self, request: LeaveRequest) -> LeaveRequest:
        with self._guard:
            if request.id in self._records:
                raise ValueError(f"Leave request {request.id} already exists")
            self._records[request.id] = request.model_copy(deep=True)
            return request.model_copy(deep=True)

    def save(self, request: LeaveRequest, expected_version: int) -> LeaveRequest:
        """
        Store ``request`` if the stored copy is still at ``expected_version``.

        Raises:
            KeyError: unknown request (``add`` creates records)
            VersionConflictError: someone else saved in between
        """
        with self._guard:
            current = self._records.get(request.id)
            if current is None:
                raise KeyError(request.id)
            if current.version != expected_version:
                raise VersionConflictError(request.id, expected_version, current.version)

            stored = request.model_copy(deep=True)
            stored.version = current.version + 1
            self._records[request.id] = stored
            return stored.model_copy(deep=True)

    @contextmanager
    def lock(self, request_id: str) -> Iterator[None]:
        with self._guard:
            record_lock = self._record_locks.setdefault(request_id, threading.RLock())
        with record_lock:
            yield

    def list_requests(
        self, status: LeaveStatus | None = None, employee_id: str | None = None
    ) -> list[LeaveRequest]:
        with self._guard:
            records = list(self._records.values())

        return [
            r.model_copy(deep=True)
            for r in records
            if (status is None or r.status == status)
            and (employee_id is None or r.employee_id == employee_id)
        ]

    def count_by_status(self) -> dict[str, int]:
        with self._guard:
            counts = Counter(r.status.value for r in self._records.values())
        return dict(counts)

    def __len__(self) -> int:
        with self._guard:
            return len(self._records)
