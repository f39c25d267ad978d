"""
Domain layer for the BFF.

Includes the token extraction / role gate, the request schemas and the
per-resource services that sit between routes and the upstream adapter.
"""

from .auth_middleware import AuthMiddleware, Identity, require_any_role, require_authenticated
from .services import AlertService, AuditService, WorkflowService

__all__ = [
    "AuthMiddleware",
    "Identity",
    "require_any_role",
    "require_authenticated",
    "AlertService",
    "AuditService",
    "WorkflowService",
]
