"""
Request schemas and enumerations for the BFF.

Entities themselves (workflows, executions, alerts, audit logs) are owned by
the orchestration API and pass through as plain JSON documents; only inbound
payloads are modelled here.
"""

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar
from uuid import UUID

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from bff_shared.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


class WorkflowStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_EXECUTION_STATUSES = frozenset({
    ExecutionStatus.COMPLETED,
    ExecutionStatus.FAILED,
    ExecutionStatus.CANCELLED,
})


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertStatus(str, Enum):
    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


def _coerce_bounded_int(value: Any, default: int, minimum: int, maximum: Optional[int] = None) -> int:
    """Coerce a query value to int; unusable input takes ``default``, out of range is clamped."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < minimum:
        return minimum
    if maximum is not None and number > maximum:
        return maximum
    return number


class PaginationParams(BaseModel):
    """Pagination query. Never rejects: values are defaulted or clamped."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @field_validator("page", mode="before")
    @classmethod
    def _normalize_page(cls, value: Any) -> int:
        return _coerce_bounded_int(value, DEFAULT_PAGE, 1)

    @field_validator("limit", mode="before")
    @classmethod
    def _normalize_limit(cls, value: Any) -> int:
        return _coerce_bounded_int(value, DEFAULT_LIMIT, 1, MAX_LIMIT)

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> "PaginationParams":
        return cls(page=query.get("page"), limit=query.get("limit"))


class _RequestModel(BaseModel):
    # Unknown keys are dropped, camelCase aliases are what the frontend sends
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready payload with only the fields the caller supplied."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class CreateWorkflowRequest(_RequestModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    definition: Dict[str, Any]
    schedule: Optional[str] = None


class UpdateWorkflowRequest(_RequestModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    definition: Optional[Dict[str, Any]] = None
    schedule: Optional[str] = None
    status: Optional[WorkflowStatus] = None


class ExecuteWorkflowRequest(_RequestModel):
    input: Optional[Dict[str, Any]] = None


class CreateAlertRequest(_RequestModel):
    workflow_id: Optional[UUID] = Field(default=None, alias="workflowId")
    execution_id: Optional[UUID] = Field(default=None, alias="executionId")
    severity: AlertSeverity
    title: str = Field(min_length=1, max_length=200)
    message: Optional[str] = Field(default=None, max_length=2000)
    source: Optional[str] = Field(default=None, max_length=100)


class AlertListFilters(_RequestModel):
    status: Optional[AlertStatus] = None


class AuditListFilters(_RequestModel):
    event_type: Optional[str] = Field(default=None, min_length=1, max_length=100)


ModelT = TypeVar("ModelT", bound=BaseModel)


def _format_errors(exc: pydantic.ValidationError) -> List[Dict[str, str]]:
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "body"
        errors.append({"field": field, "reason": err.get("msg", "invalid")})
    return errors


def validate_payload(model: Type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` against ``model`` as a whole or raise ``ValidationError``."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError(
            "Request body must be a JSON object",
            details={"errors": [{"field": "body", "reason": "expected an object"}]},
        )
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError("Validation failed", details={"errors": _format_errors(exc)}) from exc
