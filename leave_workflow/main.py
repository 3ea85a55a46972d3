"""
FastAPI application exposing the leave approval workflow.
Provides REST endpoints for submission, review decisions and monitoring.
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from data.leave_policies import get_seed_leaves
from leave_workflow.config import settings
from leave_workflow.controller import (
    ActionPreview,
    DecisionPayload,
    LeaveApplication,
    WorkflowController,
)
from leave_workflow.employee_store import employee_store
from leave_workflow.errors import DecisionResult, NotFound, WorkflowError
from leave_workflow.models import (
    AuditEntry,
    Decision,
    LeaveCategory,
    LeaveRequest,
    LeaveStatus,
    Role,
)
from leave_workflow.repository import InMemoryLeaveRepository

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "not_your_turn": status.HTTP_409_CONFLICT,
    "ineligible": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "days_mismatch": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "missing_category": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "missing_settlement": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "invalid_application": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


class DecisionRequest(BaseModel):
    """Request model for the decision endpoint."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "role": "president",
                "decision": "approve",
                "by": "President",
                "comment": "Approved after review",
                "paid_days": 3,
                "unpaid_days": 2,
                "leave_category": "medical-paid",
            }
        }
    )

    role: Role = Field(..., description="Workflow role of the acting approver")
    decision: Decision
    by: str | None = Field(None, description="Name of the acting approver")
    comment: str | None = None
    paid_days: int | None = None
    unpaid_days: int | None = None
    leave_category: LeaveCategory | None = None

    def to_payload(self) -> DecisionPayload:
        return DecisionPayload.model_validate(
            self.model_dump(include={"by", "comment", "paid_days", "unpaid_days", "leave_category"})
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    employee_store_circuit_breaker: dict


def build_controller() -> WorkflowController:
    """Wire the controller to the configured stores."""
    records = get_seed_leaves() if settings.seed_demo_data else []
    repository = InMemoryLeaveRepository.from_records(records)
    return WorkflowController(repository=repository, employees=employee_store)


_controller: WorkflowController | None = None


def get_controller() -> WorkflowController:
    global _controller
    if _controller is None:
        _controller = build_controller()
    return _controller


def error_response(errors: tuple[WorkflowError, ...] | list[WorkflowError]) -> JSONResponse:
    """Render error values; the first error decides the HTTP status."""
    code = ERROR_STATUS_CODES.get(errors[0].code, status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=code, content={"errors": [e.to_dict() for e in errors]})


def result_response(result: DecisionResult, success_code: int = status.HTTP_200_OK):
    if not result.ok:
        return error_response(result.errors)
    return JSONResponse(status_code=success_code, content=result.request.model_dump(mode="json"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting Leave Approval Workflow API")
    logger.info(f"Environment: {settings.environment}")

    controller = get_controller()
    controller.events.subscribe(
        lambda event: logger.info(
            f"Leave {event.request_id} {event.previous_status.value} -> {event.status.value} "
            f"by {event.role.value}"
            + (f", next: {event.next_role.value}" if event.next_role else "")
        )
    )

    yield

    logger.info("Shutting down Leave Approval Workflow API")
    employee_store.close()


app = FastAPI(
    title="Leave Approval Workflow API",
    description="Multi-step leave approval with eligibility and paid/unpaid reconciliation",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# API Endpoints


@app.get("/", tags=["Root"])
async def root():
    return {"message": "Leave Approval Workflow API", "version": "1.0.0", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Service status and employee-store circuit breaker state."""
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        employee_store_circuit_breaker=employee_store.get_circuit_breaker_state(),
    )


@app.post("/leaves", tags=["Leaves"], status_code=status.HTTP_201_CREATED)
def submit_leave(
    application: LeaveApplication, controller: WorkflowController = Depends(get_controller)
):
    """
    Submit a leave application.

    The approval chain is assigned from the leave type. Maternity leave
    requires an eligible employee and an expected delivery date at least 60
    days out; medical leave requires supporting documents.
    """
    result = controller.submit_leave(application)
    return result_response(result, success_code=status.HTTP_201_CREATED)


@app.get("/leaves", response_model=list[LeaveRequest], tags=["Leaves"])
def list_leaves(
    status_filter: LeaveStatus | None = Query(None, alias="status"),
    awaiting: Role | None = None,
    employee_id: str | None = None,
    controller: WorkflowController = Depends(get_controller),
):
    """List requests, optionally only those awaiting a given role."""
    return controller.list_requests(status=status_filter, awaiting=awaiting, employee_id=employee_id)


@app.get("/leaves/{request_id}", tags=["Leaves"])
def get_leave(request_id: str, controller: WorkflowController = Depends(get_controller)):
    return result_response(controller.get_request(request_id))


@app.get("/leaves/{request_id}/audit", response_model=list[AuditEntry], tags=["Leaves"])
def get_audit_trail(request_id: str, controller: WorkflowController = Depends(get_controller)):
    trail = controller.audit_trail(request_id)
    if trail is None:
        return error_response([NotFound("leave request", request_id)])
    return trail


@app.get("/leaves/{request_id}/actions", response_model=ActionPreview, tags=["Review"])
def available_actions(
    request_id: str, role: Role, controller: WorkflowController = Depends(get_controller)
):
    """
    What ``role`` may do on this request right now.

    Use it to decide which buttons to show; decisions are re-validated on
    submission regardless.
    """
    preview = controller.available_actions(request_id, role)
    if isinstance(preview, WorkflowError):
        return error_response([preview])
    return preview


@app.post("/leaves/{request_id}/decisions", tags=["Review"])
def submit_decision(
    request_id: str,
    body: DecisionRequest,
    controller: WorkflowController = Depends(get_controller),
):
    """
    Approve or reject a request as ``role``.

    Example (president approving a 5-day medical leave):
    ```json
    {
        "role": "president",
        "decision": "approve",
        "paid_days": 3,
        "unpaid_days": 2,
        "leave_category": "medical-paid"
    }
    ```

    Errors come back as ``{"errors": [...]}``: 404 unknown request,
    409 not this role's turn, 422 ineligible / days mismatch / missing
    category / missing settlement. A split mismatch and a missing category
    are both reported.
    """
    try:
        result = controller.submit_decision(request_id, body.role, body.decision, body.to_payload())
    except Exception as e:
        logger.error(f"Error in decision endpoint: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred processing the decision. Please try again.",
        ) from e

    return result_response(result)


@app.get("/ready")
def ready():
    return {"status": "ready"}


@app.get("/metrics", tags=["Monitoring"])
def metrics(controller: WorkflowController = Depends(get_controller)):
    """Request counts by status plus employee-store breaker state."""
    return {
        "requests_by_status": controller.repository.count_by_status(),
        "circuit_breaker": employee_store.get_circuit_breaker_state(),
        "environment": settings.environment,
    }


if __name__ == "__main__":
    uvicorn.run(
        "leave_workflow.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
