"""
Backend-for-frontend service for the Orchestrix console.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from bff_shared.base_service import BaseService
from bff_shared.config import ServiceConfig
from bff_shared.errors import NotFoundError, RateLimitError, ValidationError
from bff_shared.logging import clear_context, set_request_id

from .adapters.orchestrix_client import OrchestrixClient
from .domain.auth_middleware import AuthMiddleware, require_any_role, require_authenticated
from .domain.models import (
    AlertListFilters,
    AuditListFilters,
    CreateAlertRequest,
    CreateWorkflowRequest,
    ExecuteWorkflowRequest,
    PaginationParams,
    UpdateWorkflowRequest,
    validate_payload,
)
from .domain.services import AlertService, AuditService, WorkflowService
from .ratelimit.token_bucket import RateLimitMiddleware, TokenBucketRateLimiter

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}

WRITER_ROLES = ("operator", "admin")
ADMIN_ROLES = ("admin",)


def _token(request: Request) -> str:
    # Only reached behind an auth dependency, so the token is present
    return request.state.token


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError as exc:
        raise ValidationError(
            "Request body is not valid JSON",
            details={"errors": [{"field": "body", "reason": str(exc)}]},
        ) from exc


def _query_filters(request: Request, *names: str) -> dict:
    return {name: request.query_params[name] for name in names if name in request.query_params}


class BffService(BaseService):
    """BFF service implementation.

    Dependencies are built here once at startup; tests substitute any of
    them through the constructor.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        orchestrix_client: Optional[OrchestrixClient] = None,
        workflow_service: Optional[WorkflowService] = None,
        alert_service: Optional[AlertService] = None,
        audit_service: Optional[AuditService] = None,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
    ):
        self.auth_middleware = AuthMiddleware()
        super().__init__("bff", config)

        self.orchestrix_client = orchestrix_client or OrchestrixClient(
            self.config.upstream_api_url,
            timeout=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.workflow_service = workflow_service or WorkflowService(self.orchestrix_client)
        self.alert_service = alert_service or AlertService(self.orchestrix_client)
        self.audit_service = audit_service or AuditService(self.orchestrix_client)

        self.rate_limiter = rate_limiter or TokenBucketRateLimiter(self.config.rate_limit_per_minute)
        self.rate_limit_middleware = RateLimitMiddleware(self.rate_limiter)

        self.app.include_router(self._workflow_router())
        self.app.include_router(self._alert_router())
        self.app.include_router(self._audit_router())

        self.app.state.bff_service = self

        self.logger.info(
            "BFF configured",
            upstream=self.config.upstream_api_url,
            api_prefix=self.config.api_prefix,
            rate_limit_per_minute=self.config.rate_limit_per_minute,
        )

    def _setup_request_middleware(self):
        """Request id, token extraction, rate limiting and security headers."""

        @self.app.middleware("http")
        async def request_context(request: Request, call_next):
            clear_context()
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            self.auth_middleware.authenticate_request(request)

            rate_result = None
            if request.method != "OPTIONS" and request.url.path.startswith(self.config.api_prefix):
                rate_result = self.rate_limit_middleware.check_request(request)
                if not rate_result["allowed"]:
                    self.metrics.record_rate_limited(self.route_template(request))
                    exc = RateLimitError(retry_after=rate_result["retry_after"])
                    response = JSONResponse(
                        status_code=exc.status_code,
                        content=exc.to_response().model_dump(exclude_none=True),
                        headers={"Retry-After": str(exc.retry_after)},
                    )
                    return self._finalize(response, request_id, rate_result)

            response = await call_next(request)
            return self._finalize(response, request_id, rate_result)

    def _finalize(self, response: Response, request_id: str, rate_result: Optional[dict]) -> Response:
        response.headers["X-Request-ID"] = request_id
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        if rate_result is not None:
            RateLimitMiddleware.apply_headers(response, rate_result)
        return response

    def _workflow_router(self) -> APIRouter:
        router = APIRouter(prefix=self.config.api_prefix, tags=["workflows"])
        writers = [Depends(require_any_role(*WRITER_ROLES))]
        admins = [Depends(require_any_role(*ADMIN_ROLES))]

        @router.get("/workflows")
        async def list_workflows(request: Request, token: str = Depends(require_authenticated)):
            query = PaginationParams.from_query(request.query_params)
            return await self.workflow_service.list(token, query.page, query.limit)

        @router.get("/workflows/{workflow_id}")
        async def get_workflow(workflow_id: str, token: str = Depends(require_authenticated)):
            workflow = await self.workflow_service.get_by_id(workflow_id, token)
            if workflow is None:
                raise NotFoundError("Workflow")
            return {"data": workflow}

        @router.post("/workflows", status_code=201, dependencies=writers)
        async def create_workflow(request: Request):
            body = validate_payload(CreateWorkflowRequest, await _read_json(request))
            workflow = await self.workflow_service.create(body.to_payload(), _token(request))
            return {"data": workflow}

        @router.put("/workflows/{workflow_id}", dependencies=writers)
        async def update_workflow(workflow_id: str, request: Request):
            body = validate_payload(UpdateWorkflowRequest, await _read_json(request))
            workflow = await self.workflow_service.update(workflow_id, body.to_payload(), _token(request))
            return {"data": workflow}

        @router.delete("/workflows/{workflow_id}", status_code=204, dependencies=admins)
        async def delete_workflow(workflow_id: str, request: Request):
            await self.workflow_service.delete(workflow_id, _token(request))
            return Response(status_code=204)

        @router.post("/workflows/{workflow_id}/execute", status_code=202, dependencies=writers)
        async def execute_workflow(workflow_id: str, request: Request):
            body = validate_payload(ExecuteWorkflowRequest, await _read_json(request))
            execution = await self.workflow_service.execute(workflow_id, body.to_payload(), _token(request))
            return {"data": execution}

        @router.get("/workflows/{workflow_id}/executions")
        async def list_executions(workflow_id: str, request: Request, token: str = Depends(require_authenticated)):
            query = PaginationParams.from_query(request.query_params)
            return await self.workflow_service.list_executions(workflow_id, token, query.page, query.limit)

        @router.get("/executions/{execution_id}")
        async def get_execution(execution_id: str, token: str = Depends(require_authenticated)):
            execution = await self.workflow_service.get_execution(execution_id, token)
            if execution is None:
                raise NotFoundError("Execution")
            return {"data": execution}

        return router

    def _alert_router(self) -> APIRouter:
        router = APIRouter(prefix=self.config.api_prefix, tags=["alerts"])
        writers = [Depends(require_any_role(*WRITER_ROLES))]

        @router.get("/alerts")
        async def list_alerts(request: Request, token: str = Depends(require_authenticated)):
            query = PaginationParams.from_query(request.query_params)
            filters = validate_payload(AlertListFilters, _query_filters(request, "status"))
            status = filters.status.value if filters.status else None
            return await self.alert_service.list(token, query.page, query.limit, status=status)

        @router.get("/alerts/{alert_id}")
        async def get_alert(alert_id: str, token: str = Depends(require_authenticated)):
            alert = await self.alert_service.get_by_id(alert_id, token)
            if alert is None:
                raise NotFoundError("Alert")
            return {"data": alert}

        @router.post("/alerts", status_code=201, dependencies=writers)
        async def create_alert(request: Request):
            body = validate_payload(CreateAlertRequest, await _read_json(request))
            alert = await self.alert_service.create(body.to_payload(), _token(request))
            return {"data": alert}

        @router.post("/alerts/{alert_id}/acknowledge", dependencies=writers)
        async def acknowledge_alert(alert_id: str, request: Request):
            alert = await self.alert_service.acknowledge(alert_id, _token(request))
            return {"data": alert}

        @router.post("/alerts/{alert_id}/resolve", dependencies=writers)
        async def resolve_alert(alert_id: str, request: Request):
            alert = await self.alert_service.resolve(alert_id, _token(request))
            return {"data": alert}

        return router

    def _audit_router(self) -> APIRouter:
        if self.config.audit_require_admin:
            gate = [Depends(require_any_role(*ADMIN_ROLES))]
        else:
            gate = [Depends(require_authenticated)]
        router = APIRouter(prefix=self.config.api_prefix, tags=["audit"], dependencies=gate)

        @router.get("/audit-logs")
        async def list_audit_logs(request: Request):
            query = PaginationParams.from_query(request.query_params)
            filters = validate_payload(AuditListFilters, _query_filters(request, "event_type"))
            return await self.audit_service.list(
                _token(request), query.page, query.limit, event_type=filters.event_type
            )

        @router.get("/audit-logs/resource/{resource_type}/{resource_id}")
        async def list_audit_logs_by_resource(resource_type: str, resource_id: str, request: Request):
            query = PaginationParams.from_query(request.query_params)
            return await self.audit_service.list_by_resource(
                resource_type, resource_id, _token(request), query.page, query.limit
            )

        @router.get("/audit-logs/user/{user_id}")
        async def list_audit_logs_by_user(user_id: str, request: Request):
            query = PaginationParams.from_query(request.query_params)
            return await self.audit_service.list_by_user(user_id, _token(request), query.page, query.limit)

        @router.get("/audit-logs/{audit_log_id}")
        async def get_audit_log(audit_log_id: str, request: Request):
            audit_log = await self.audit_service.get_by_id(audit_log_id, _token(request))
            if audit_log is None:
                raise NotFoundError("Audit log")
            return {"data": audit_log}

        return router


def create_app(**dependencies):
    """Create FastAPI application."""
    service = BffService(**dependencies)
    return service.app


def main():
    service = BffService()
    service.run()


if __name__ == "__main__":
    main()
