"""
Employee store backed by Snowflake, with circuit breaker protection.
Falls back to the bundled mock employees when Snowflake is unavailable.
"""

import logging
from contextlib import contextmanager
from typing import Any, Protocol

import pandas as pd
from pydantic import ValidationError
from snowflake.snowpark import Session
from snowflake.snowpark.exceptions import SnowparkSQLException
from snowflake.snowpark.functions import col

from data.leave_policies import get_employee_data  # Mock fallback
from leave_workflow.circuit_breaker import CircuitBreaker
from leave_workflow.config import settings
from leave_workflow.eligibility import calculate_probation_end_date
from leave_workflow.models import Employee, EmploymentStatus
from leave_workflow.observability import trace_span

logger = logging.getLogger(__name__)

EMPLOYEE_COLUMNS = (
    "employee_id",
    "name",
    "department",
    "gender",
    "employment_status",
    "join_date",
    "probation_end_date",
)


class EmployeeStore(Protocol):
    def get_employee(self, employee_id: str) -> Employee | None: ...


class SnowflakeEmployeeStore:
    """
    Read-only employee lookups.

    The workflow needs gender, employment status and leave balances for the
    eligibility gate; everything else about an employee stays in HR systems.
    With ``use_mock`` (or when no Snowflake session can be opened) lookups
    are served from ``data.leave_policies.MOCK_EMPLOYEES``.
    """

    def __init__(self, use_mock: bool = True):
        self.use_mock = use_mock
        self.session: Session | None = None
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            timeout=settings.circuit_breaker_timeout,
            name="EmployeeStoreCircuitBreaker",
        )

        if not use_mock:
            self._connect()

    def _connect(self):
        params = {
            key: getattr(settings, f"snowflake_{key}")
            for key in ("account", "user", "password", "warehouse", "database", "schema")
        }
        try:
            self.session = Session.builder.configs(params).create()
        except Exception as e:
            logger.error(f"Could not open Snowflake session for employee store: {e}")
            logger.warning("Employee lookups will use mock data")
            self.use_mock = True
            return
        logger.info(f"Employee store connected to Snowflake database {params['database']}")

    @contextmanager
    def session_scope(self):
        """Yield the live session, or None when running on mock data."""
        if self.use_mock or self.session is None:
            yield None
            return
        try:
            yield self.session
        except SnowparkSQLException as e:
            logger.error(f"Employee store query failed: {e}")
            raise

    def get_employee(self, employee_id: str) -> Employee | None:
        """Look up an employee; None if no such employee exists."""
        with trace_span("employee_store_query", employee=employee_id, mock=self.use_mock):
            if self.use_mock:
                return _to_employee(get_employee_data(employee_id))

            try:
                record = self.circuit_breaker.call(self._fetch_employee, employee_id)
            except Exception as e:
                logger.error(f"Employee lookup for {employee_id} failed or was refused: {e}")
                logger.warning("Falling back to mock employee data")
                record = get_employee_data(employee_id)

            return _to_employee(record)

    def _fetch_employee(self, employee_id: str) -> dict[str, Any] | None:
        with self.session_scope() as session:
            if session is None:
                raise RuntimeError("Snowflake session not available")

            people = (
                session.table("employees")
                .select(*EMPLOYEE_COLUMNS)
                .filter(col("employee_id") == employee_id)
                .to_pandas()
            )
            if people.empty:
                logger.warning(f"Employee {employee_id} not found in Snowflake")
                return None

            people.columns = [c.lower() for c in people.columns]
            record = {k: None if pd.isna(v) else v for k, v in people.iloc[0].items()}
            record["id"] = record.pop("employee_id")

            balances = (
                session.table("leave_balances")
                .select("leave_type", "balance")
                .filter(col("employee_id") == employee_id)
                .to_pandas()
            )
            balances.columns = [c.lower() for c in balances.columns]
            record["leave_balance"] = (
                dict(zip(balances["leave_type"], balances["balance"].astype(float)))
                if not balances.empty
                else {}
            )

            logger.info(f"Loaded employee {employee_id} from Snowflake")
            return record

    def get_circuit_breaker_state(self) -> dict:
        return self.circuit_breaker.get_state()

    def close(self):
        if self.session is not None:
            self.session.close()
            self.session = None
            logger.info("Employee store session closed")


def _to_employee(record: dict[str, Any] | None) -> Employee | None:
    if record is None:
        return None

    record = {k: v for k, v in record.items() if v is not None}
    try:
        employee = Employee.model_validate(record)
    except ValidationError as e:
        logger.error(f"Malformed employee record {record.get('id')}: {e}")
        raise

    if (
        employee.employment_status == EmploymentStatus.PROBATION
        and employee.probation_end_date is None
        and employee.join_date is not None
    ):
        end = calculate_probation_end_date(employee.join_date, settings.probation_months)
        employee = employee.model_copy(update={"probation_end_date": end})

    return employee


# Global employee store instance
employee_store = SnowflakeEmployeeStore(use_mock=not bool(settings.snowflake_account))
