"""
Orchestrix API client for the BFF.
"""

import time
from typing import Any, Dict, Optional

import httpx

from bff_shared.errors import TransportError, UpstreamError
from bff_shared.logging import get_logger
from bff_shared.metrics import MetricsCollector


class OrchestrixClient:
    """Single entry point for every call to the upstream orchestration API.

    The caller's bearer token is forwarded verbatim. Non-2xx answers become
    :class:`UpstreamError` with the upstream status preserved; unreachable
    upstreams become :class:`TransportError`. Nothing is retried or cached,
    and a 404 is reported like any other status.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        metrics: Optional[MetricsCollector] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.metrics = metrics
        self._transport = transport
        self.logger = get_logger("bff.orchestrix_client")

    def _build_headers(self, token: str, has_body: bool) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def call(
        self,
        method: str,
        path: str,
        token: str,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one request and return the parsed JSON body (``None`` for no content)."""
        url = f"{self.base_url}{path}"
        has_body = body is not None
        start = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=body if has_body else None,
                    headers=self._build_headers(token, has_body),
                )
        except httpx.TimeoutException as exc:
            self._record(method, "timeout", start)
            self.logger.error("Upstream request timed out", method=method, url=url, error=str(exc))
            raise TransportError("Upstream request timed out", details={"url": url}, timed_out=True) from exc
        except httpx.TransportError as exc:
            self._record(method, "error", start)
            self.logger.error("Upstream unreachable", method=method, url=url, error=str(exc))
            raise TransportError("Upstream unavailable", details={"url": url}) from exc

        self._record(method, response.status_code, start)
        return self._handle_response(method, url, response)

    def _handle_response(self, method: str, url: str, response: httpx.Response) -> Any:
        if response.is_success:
            if response.status_code == 204 or not response.content:
                self.logger.debug("Upstream returned no content", method=method, url=url)
                return None
            try:
                data = response.json()
            except ValueError:
                self.logger.error(
                    "Upstream returned a non-JSON body",
                    method=method,
                    url=url,
                    status_code=response.status_code,
                )
                raise UpstreamError(502, "Upstream returned an invalid response", details=response.text)
            self.logger.debug("Upstream request succeeded", method=method, url=url, status_code=response.status_code)
            return data

        try:
            details: Any = response.json()
        except ValueError:
            details = response.text

        log = self.logger.warning if response.status_code < 500 else self.logger.error
        log(
            "Upstream request failed",
            method=method,
            url=url,
            status_code=response.status_code,
        )
        raise UpstreamError(
            response.status_code,
            response.reason_phrase or "Upstream request failed",
            details=details,
        )

    def _record(self, method: str, status: Any, start: float) -> None:
        if self.metrics is not None:
            self.metrics.record_upstream_request(method, status, time.perf_counter() - start)

    async def get(self, path: str, token: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.call("GET", path, token, params=params)

    async def post(self, path: str, token: str, body: Optional[Any] = None) -> Any:
        return await self.call("POST", path, token, body=body)

    async def put(self, path: str, token: str, body: Optional[Any] = None) -> Any:
        return await self.call("PUT", path, token, body=body)

    async def delete(self, path: str, token: str) -> Any:
        return await self.call("DELETE", path, token)
