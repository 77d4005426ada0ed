"""Request function used to reach the identity endpoint.

Pattern: Route-Addressed Request Function
------------------------------------------
The session layer never builds URLs.  It calls an async *request function*
with a route identifier such as ``"POST /v3/auth/login"``, a params mapping
and optional per-call options, and receives an ``ApiResponse`` that is either
``ok`` with the decoded payload or not ``ok`` with ``{"message": ...}``.

``HttpRequester`` is the ``httpx`` implementation.  Anything with the same
call signature (a test double, a request function shared with other API
clients of the host application) can be handed to the gateway client
instead.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ApiResponse:
    """Outcome of one request.

    Attributes:
        ok:      ``True`` for a 2xx response with a JSON body.
        data:    Decoded payload, or ``{"message": ...}`` when not ``ok``.
        status:  HTTP status code, ``None`` when no response was received.
        headers: Response headers (pagination metadata travels here).
        malformed: ``True`` for a 2xx response whose body is not JSON.
    """

    ok: bool
    data: Any
    status: int | None = None
    headers: Mapping[str, str] = dataclasses.field(default_factory=dict)
    malformed: bool = False

    @property
    def message(self) -> str:
        if isinstance(self.data, Mapping):
            return str(self.data.get("message", "Request failed"))
        return "Request failed"


class RequestFunction(Protocol):
    async def __call__(
        self,
        route: str,
        params: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
    ) -> ApiResponse: ...


def split_route(route: str) -> tuple[str, str]:
    """Split ``"POST /v3/auth/login"`` into ``("POST", "/v3/auth/login")``."""
    method, _, path = route.strip().partition(" ")
    if not path:
        raise ValueError(f"Route must be 'METHOD /path', got: {route!r}")
    return method.upper(), path.strip()


def _sanitize_error(exc: Exception) -> str:
    text = str(exc)
    if "Authorization" in text or "Bearer" in text:
        return "Network error occurred"
    return f"Network error: {text}"


class HttpRequester:
    """``httpx``-backed request function bound to one identity endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __call__(
        self,
        route: str,
        params: Mapping[str, Any],
        options: Mapping[str, Any] | None = None,
    ) -> ApiResponse:
        method, path = split_route(route)
        headers = {"Accept": "application/json"}
        if options:
            headers.update(options.get("headers", {}))

        logger.debug("Request %s", route)
        try:
            response = await self._client.request(
                method,
                path,
                json=params.get("data"),
                params=params.get("query"),
                headers=headers,
            )
        except httpx.RequestError as exc:
            logger.warning("Request %s failed: %s", route, _sanitize_error(exc))
            return ApiResponse(ok=False, data={"message": _sanitize_error(exc)})

        return self._to_api_response(route, response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpRequester:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- private helpers -----------------------------------------------------

    @staticmethod
    def _to_api_response(route: str, response: httpx.Response) -> ApiResponse:
        headers = dict(response.headers)
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_success:
            if body is None:
                return ApiResponse(
                    ok=False,
                    data={"message": f"Malformed response from {route}"},
                    status=response.status_code,
                    headers=headers,
                    malformed=True,
                )
            return ApiResponse(ok=True, data=body, status=response.status_code, headers=headers)

        message = response.reason_phrase or f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("message"):
            message = str(body["message"])
        logger.debug("Request %s rejected: status=%s", route, response.status_code)
        return ApiResponse(
            ok=False,
            data={"message": message},
            status=response.status_code,
            headers=headers,
        )
