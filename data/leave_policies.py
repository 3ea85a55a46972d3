"""
Leave policy data and demo records.
In production, chain composition and employee records come from HR systems.
"""

from datetime import date, datetime, time, timedelta

# Leave types that cannot be submitted without supporting documents
DOCUMENTS_REQUIRED = {"medical", "msphd"}

DEFAULT_APPROVAL_CHAIN = ["hod", "dean", "hr"]

APPROVAL_HIERARCHY = {
    "annual": ["hod", "dean", "hr"],
    "sick": ["hod", "dean", "hr"],
    "casual": ["hod", "dean", "hr"],
    "maternity": ["hod", "vc", "president"],
    "medical": ["hod", "vc", "president"],
    "marriage": ["hod", "hr"],
    "hajj": ["hod", "vc", "president"],
    "umrah": ["hod", "hr"],
    "msphd": ["hod", "vc", "president"],
    "other": ["hod", "hr"],
}

# Role that sets the paid/unpaid split for a leave type. Types missing here
# carry no split.
FINAL_FINANCIAL_APPROVER = {
    "annual": "dean",
    "sick": "dean",
    "casual": "dean",
    "unpaid": "dean",
    "medical": "president",
}

# Leave types whose final approver must also classify the leave
CATEGORY_REQUIRED = {"medical"}

MOCK_EMPLOYEES = {
    "e1": {
        "id": "e1",
        "name": "Alice Smith",
        "department": "CS",
        "gender": "female",
        "employment_status": "confirmed",
        "join_date": "2019-08-01",
        "leave_balance": {"annual": 18, "sick": 8, "casual": 8, "medical": 30},
    },
    "e2": {
        "id": "e2",
        "name": "Bob Khan",
        "department": "EE",
        "gender": "male",
        "employment_status": "confirmed",
        "join_date": "2018-02-12",
        "leave_balance": {"annual": 20, "sick": 10, "casual": 10, "medical": 30},
    },
    "e3": {
        "id": "e3",
        "name": "Dr. Diana Prince",
        "department": "BBA",
        "gender": "female",
        "employment_status": "confirmed",
        "join_date": "2016-09-01",
        "leave_balance": {"annual": 15, "sick": 8, "casual": 5, "medical": 30},
    },
    "e4": {
        "id": "e4",
        "name": "Prof. Rashid Ali",
        "department": "CS",
        "gender": "male",
        "employment_status": "confirmed",
        "join_date": "2015-01-05",
        "leave_balance": {"annual": 5, "sick": 12, "casual": 4, "medical": 30},
    },
    "e5": {
        "id": "e5",
        "name": "Sara Malik",
        "department": "SE",
        "gender": "female",
        "employment_status": "probation",
        "join_date": "2026-07-01",
        "probation_end_date": "2026-12-28",
        "leave_balance": {"annual": 20, "sick": 12, "casual": 10, "medical": 30},
    },
}


def get_approval_chain(leave_type: str) -> list[str]:
    """Ordered approver roles for a leave type."""
    return list(APPROVAL_HIERARCHY.get(leave_type, DEFAULT_APPROVAL_CHAIN))


def get_final_financial_approver(leave_type: str) -> str | None:
    """Role that reconciles paid/unpaid days for a leave type, if any."""
    return FINAL_FINANCIAL_APPROVER.get(leave_type)


def requires_category(leave_type: str) -> bool:
    return leave_type in CATEGORY_REQUIRED


def requires_documents(leave_type: str) -> bool:
    return leave_type in DOCUMENTS_REQUIRED


def get_employee_data(employee_id: str):
    """Get employee data by ID."""
    return MOCK_EMPLOYEES.get(employee_id)


def _step(role, status="pending", by=None, on=None, comment=None, **split):
    at = datetime.combine(on, time(9, 0)) if on else None
    return {"role": role, "status": status, "by": by, "date": at, "comment": comment, **split}


def get_seed_leaves(today: date | None = None) -> list[dict]:
    """Demo leave requests, dated relative to ``today``."""
    today = today or date.today()

    def ago(n: int) -> date:
        return today - timedelta(days=n)

    return [
        {
            "id": "l1",
            "employee_id": "e1",
            "type": "annual",
            "start_date": ago(5),
            "end_date": ago(3),
            "reason": "Family vacation",
            "status": "Approved",
            "applied_on": ago(10),
            "paid_days": 3,
            "unpaid_days": 0,
            "current_step_index": 3,
            "approval_chain": [
                _step("hod", "approved", "Dr. HOD", ago(8)),
                _step("dean", "approved", "Prof. Dean", ago(7), paid_days=3, unpaid_days=0),
                _step("hr", "approved", "HR Manager", ago(6)),
            ],
        },
        {
            "id": "l2",
            "employee_id": "e3",
            "type": "medical",
            "start_date": ago(12),
            "end_date": ago(8),
            "reason": "Medical procedure",
            "status": "Approved",
            "applied_on": ago(15),
            "paid_days": 3,
            "unpaid_days": 2,
            "leave_category": "medical-paid",
            "current_step_index": 3,
            "documents": [
                {
                    "id": "doc1",
                    "name": "Medical Certificate.pdf",
                    "url": "/mock/medical-cert.pdf",
                    "size": 125000,
                    "uploaded_at": ago(15),
                }
            ],
            "approval_chain": [
                _step("hod", "approved", "Dr. HOD", ago(14), "Medical documents verified"),
                _step("vc", "approved", "Vice Chancellor", ago(10), "Recommended for approval"),
                _step(
                    "president",
                    "approved",
                    "President",
                    ago(5),
                    "Approved",
                    paid_days=3,
                    unpaid_days=2,
                    leave_category="medical-paid",
                ),
            ],
        },
        {
            "id": "l3",
            "employee_id": "e4",
            "type": "sick",
            "start_date": ago(4),
            "end_date": ago(2),
            "reason": "Flu",
            "status": "Pending",
            "applied_on": ago(5),
            "approval_chain": [_step("hod"), _step("dean"), _step("hr")],
        },
    ]
