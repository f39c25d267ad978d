"""
Resource services: workflows, alerts and audit logs.

Each method maps onto exactly one upstream call. Get-by-id lookups turn an
upstream 404 into ``None``; every other operation lets ``UpstreamError``
propagate with its status intact. Mutations hand back the entity upstream
returned, unmodified.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote

from bff_shared.errors import UpstreamError
from bff_shared.logging import get_logger

from ..adapters.orchestrix_client import OrchestrixClient

API_PREFIX = "/api/v1"

Document = Dict[str, Any]


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class ResourceService:
    """Shared plumbing for the per-resource services."""

    resource_name = "resource"

    def __init__(self, client: OrchestrixClient):
        self.client = client
        self.logger = get_logger(f"bff.{self.resource_name}_service")

    async def _list(self, path: str, token: str, page: int, limit: int, **filters: Optional[str]) -> Document:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        params.update({key: value for key, value in filters.items() if value is not None})
        return await self.client.get(path, token, params=params)

    async def _get_optional(self, path: str, token: str) -> Optional[Document]:
        try:
            response = await self.client.get(path, token)
        except UpstreamError as exc:
            if exc.status == 404:
                self.logger.info("Upstream resource not found", path=path)
                return None
            raise
        return self._unwrap(response, path)

    def _unwrap(self, response: Any, path: str) -> Document:
        """Pull ``data`` out of an upstream ``{data: ...}`` envelope."""
        if not isinstance(response, dict) or "data" not in response:
            self.logger.error("Upstream response missing data envelope", path=path)
            raise UpstreamError(502, "Upstream response missing data", details=response)
        return response["data"]


class WorkflowService(ResourceService):
    resource_name = "workflow"

    async def list(self, token: str, page: int, limit: int) -> Document:
        return await self._list(f"{API_PREFIX}/workflows", token, page, limit)

    async def get_by_id(self, workflow_id: str, token: str) -> Optional[Document]:
        return await self._get_optional(f"{API_PREFIX}/workflows/{_segment(workflow_id)}", token)

    async def create(self, payload: Document, token: str) -> Document:
        path = f"{API_PREFIX}/workflows"
        return self._unwrap(await self.client.post(path, token, body=payload), path)

    async def update(self, workflow_id: str, payload: Document, token: str) -> Document:
        path = f"{API_PREFIX}/workflows/{_segment(workflow_id)}"
        return self._unwrap(await self.client.put(path, token, body=payload), path)

    async def delete(self, workflow_id: str, token: str) -> None:
        await self.client.delete(f"{API_PREFIX}/workflows/{_segment(workflow_id)}", token)

    async def execute(self, workflow_id: str, payload: Document, token: str) -> Document:
        path = f"{API_PREFIX}/workflows/{_segment(workflow_id)}/execute"
        return self._unwrap(await self.client.post(path, token, body=payload), path)

    async def list_executions(self, workflow_id: str, token: str, page: int, limit: int) -> Document:
        return await self._list(f"{API_PREFIX}/workflows/{_segment(workflow_id)}/executions", token, page, limit)

    async def get_execution(self, execution_id: str, token: str) -> Optional[Document]:
        return await self._get_optional(f"{API_PREFIX}/executions/{_segment(execution_id)}", token)


class AlertService(ResourceService):
    resource_name = "alert"

    async def list(self, token: str, page: int, limit: int, status: Optional[str] = None) -> Document:
        return await self._list(f"{API_PREFIX}/alerts", token, page, limit, status=status)

    async def get_by_id(self, alert_id: str, token: str) -> Optional[Document]:
        return await self._get_optional(f"{API_PREFIX}/alerts/{_segment(alert_id)}", token)

    async def create(self, payload: Document, token: str) -> Document:
        path = f"{API_PREFIX}/alerts"
        return self._unwrap(await self.client.post(path, token, body=payload), path)

    async def acknowledge(self, alert_id: str, token: str) -> Document:
        path = f"{API_PREFIX}/alerts/{_segment(alert_id)}/acknowledge"
        return self._unwrap(await self.client.post(path, token), path)

    async def resolve(self, alert_id: str, token: str) -> Document:
        path = f"{API_PREFIX}/alerts/{_segment(alert_id)}/resolve"
        return self._unwrap(await self.client.post(path, token), path)


class AuditService(ResourceService):
    resource_name = "audit"

    async def list(self, token: str, page: int, limit: int, event_type: Optional[str] = None) -> Document:
        return await self._list(f"{API_PREFIX}/audit-logs", token, page, limit, event_type=event_type)

    async def get_by_id(self, audit_log_id: str, token: str) -> Optional[Document]:
        return await self._get_optional(f"{API_PREFIX}/audit-logs/{_segment(audit_log_id)}", token)

    async def list_by_resource(
        self,
        resource_type: str,
        resource_id: str,
        token: str,
        page: int,
        limit: int,
    ) -> Document:
        path = f"{API_PREFIX}/audit-logs/resource/{_segment(resource_type)}/{_segment(resource_id)}"
        return await self._list(path, token, page, limit)

    async def list_by_user(self, user_id: str, token: str, page: int, limit: int) -> Document:
        return await self._list(f"{API_PREFIX}/audit-logs/user/{_segment(user_id)}", token, page, limit)
