"""
Base service class for Orchestrix BFF services.
"""

import time
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from bff_shared.config import ServiceConfig, get_config
from bff_shared.errors import BffException, ErrorResponse, RateLimitError, current_trace_id, reason_phrase
from bff_shared.logging import configure_logging, get_logger
from bff_shared.metrics import get_metrics_collector
from bff_shared.tracing import configure_tracing, instrument_app

UNMATCHED_ENDPOINT = "unmatched"


def error_response(status_code: int, message: str, details=None, headers=None) -> JSONResponse:
    """Render the ``{error, message}`` envelope."""
    body = ErrorResponse(
        error=reason_phrase(status_code),
        message=message,
        details=details,
        trace_id=current_trace_id(),
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config(service_name)
        self.port = self.config.port
        self.logger = get_logger(f"{service_name}.service")
        self.metrics = get_metrics_collector(service_name)

        configure_logging(service_name, self.config.log_level)

        if self.config.enable_tracing:
            configure_tracing(
                service_name,
                self.config.otel_exporter,
                enable_console=self.config.enable_console_tracing,
            )

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()

        if self.config.enable_tracing:
            instrument_app(self.app)

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.upper()} Service",
            description="Orchestrix backend-for-frontend",
            version="1.0.0",
            docs_url="/docs" if self.config.env == "local" else None,
            redoc_url="/redoc" if self.config.env == "local" else None,
        )

    def _setup_middleware(self):
        """Set up middleware.

        Starlette runs the last-added middleware first, so the resulting
        order per request is CORS -> request middleware -> timing.
        """

        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            start_time = time.time()

            response = await call_next(request)

            duration = time.time() - start_time
            self.metrics.record_http_request(
                method=request.method,
                endpoint=self.route_template(request),
                status_code=response.status_code,
                duration=duration
            )

            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2)
            )

            return response

        self._setup_request_middleware()

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=[self.config.cors_origin],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    def _setup_request_middleware(self):
        """Hook for service-specific middleware. Override in subclasses."""

    def route_template(self, request: Request) -> str:
        """Metric label for a request: the matched route path, never the raw URL."""
        route = request.scope.get("route")
        if route is None:
            for candidate in self.app.router.routes:
                match, _ = candidate.matches(request.scope)
                if match == Match.FULL:
                    route = candidate
                    break
        return getattr(route, "path", UNMATCHED_ENDPOINT)

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            return {"status": "healthy"}

        @self.app.get("/health/live")
        async def liveness():
            return {"status": "alive"}

        @self.app.get("/health/ready")
        async def readiness():
            return {"status": "ready"}

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=generate_latest(self.metrics.registry),
                media_type=CONTENT_TYPE_LATEST
            )

        @self.app.exception_handler(BffException)
        async def bff_exception_handler(request: Request, exc: BffException):
            log = self.logger.warning if exc.status_code < 500 else self.logger.error
            log(
                "Request failed",
                code=exc.code,
                status_code=exc.status_code,
                message=exc.message,
                path=request.url.path,
            )
            self.metrics.record_error(exc.code)
            headers = None
            if isinstance(exc, RateLimitError):
                headers = {"Retry-After": str(exc.retry_after)}
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump(exclude_none=True),
                headers=headers,
            )

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            errors = [
                {"field": ".".join(str(part) for part in err.get("loc", ())), "reason": err.get("msg", "")}
                for err in exc.errors()
            ]
            return error_response(400, "Validation failed", {"errors": errors})

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            message = exc.detail if isinstance(exc.detail, str) else reason_phrase(exc.status_code)
            return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            return error_response(500, "Internal server error")

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
