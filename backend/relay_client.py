"""
Relay Client - one outbound call to one backend.

Handles:
- Target URL per operation (WakaTime-compatible /api/v1 paths)
- HTTP Basic credentials (empty username, API key as password)
- User-Agent tagging and JSON content type for writes
- A bounded timeout, with every transport problem returned as a value
- Keeping non-201 write responses readable after they were logged
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import httpx

from schemas import BackendConfig

API_PREFIX = "/api/v1"
PRODUCT_TOKEN = "JasonLovesDoggo/multitime"
REQUEST_TIMEOUT_SECONDS = 10.0


class Operation(str, Enum):
    """The three calls the relay knows how to make."""
    HEARTBEAT = "heartbeat-single"
    HEARTBEATS_BULK = "heartbeat-bulk"
    STATUS_TODAY = "status-today"

    @property
    def path(self) -> str:
        return _OPERATION_PATHS[self]

    @property
    def is_write(self) -> bool:
        return self is not Operation.STATUS_TODAY

    @property
    def method(self) -> str:
        return "POST" if self.is_write else "GET"


_OPERATION_PATHS = {
    Operation.HEARTBEAT: "/users/current/heartbeats",
    Operation.HEARTBEATS_BULK: "/users/current/heartbeats.bulk",
    Operation.STATUS_TODAY: "/users/current/status_bar/today",
}


@dataclass(frozen=True)
class Success:
    """The backend answered; `response` is open in streaming mode."""
    backend: BackendConfig
    response: httpx.Response

    @property
    def status_code(self) -> int:
        return self.response.status_code


@dataclass(frozen=True)
class TransportFailure:
    """No response: bad URL, connection error or timeout."""
    backend: BackendConfig
    error: Exception


CallOutcome = Union[Success, TransportFailure]


def target_url(backend: BackendConfig, operation: Operation) -> str:
    return f"{backend.url.rstrip('/')}{API_PREFIX}{operation.path}"


def relay_user_agent(user_agent: Optional[str]) -> str:
    """Append the relay's product token to the caller's User-Agent."""
    if user_agent:
        return f"{user_agent} ({PRODUCT_TOKEN})"
    return f"({PRODUCT_TOKEN})"


async def rewrap_drained(response: httpx.Response) -> tuple:
    """
    Read the raw body of `response` to the end and close it.

    Returns the raw bytes and a new response with the same status and
    headers whose stream replays those bytes, so it can still be relayed.
    """
    raw = b"".join([chunk async for chunk in response.aiter_raw()])
    await response.aclose()
    replay = httpx.Response(
        status_code=response.status_code,
        headers=response.headers,
        stream=httpx.ByteStream(raw),
        request=response.request,
        extensions=response.extensions,
    )
    return raw, replay


class RelayClient:
    """
    Async client for a single backend call.

    Never raises for transport problems: call() always returns a
    CallOutcome, so one backend's failure stays with that backend.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        logger: logging.Logger,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.http_client = http_client
        self.logger = logger
        self.timeout = timeout

    def build_request(
        self,
        operation: Operation,
        backend: BackendConfig,
        body: bytes = b"",
        user_agent: Optional[str] = None,
    ) -> httpx.Request:
        headers = {"User-Agent": relay_user_agent(user_agent)}
        if operation.is_write:
            headers["Content-Type"] = "application/json"

        return self.http_client.build_request(
            operation.method,
            target_url(backend, operation),
            content=body if operation.is_write else None,
            headers=headers,
            timeout=self.timeout,
        )

    async def call(
        self,
        operation: Operation,
        backend: BackendConfig,
        body: bytes = b"",
        user_agent: Optional[str] = None,
    ) -> CallOutcome:
        try:
            request = self.build_request(operation, backend, body, user_agent)
        except (httpx.InvalidURL, httpx.UnsupportedProtocol, ValueError) as e:
            self.logger.debug(f"[{backend.name}] cannot build {operation.value} request: {e}")
            return TransportFailure(backend=backend, error=e)

        self.logger.debug(f"[{backend.name}] forwarding {operation.value} to {request.url}")
        try:
            response = await asyncio.wait_for(
                self.http_client.send(request, auth=httpx.BasicAuth("", backend.api_key), stream=True),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            self.logger.debug(f"[{backend.name}] {operation.value} timed out after {self.timeout}s")
            return TransportFailure(backend=backend, error=httpx.TimeoutException(
                f"no response within {self.timeout}s", request=request,
            ))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.debug(f"[{backend.name}] {operation.value} failed: {type(e).__name__}: {e}")
            return TransportFailure(backend=backend, error=e)

        if operation.is_write and response.status_code != 201:
            response = await self._log_unexpected_status(operation, backend, response)

        return Success(backend=backend, response=response)

    async def _log_unexpected_status(
        self,
        operation: Operation,
        backend: BackendConfig,
        response: httpx.Response,
    ) -> httpx.Response:
        try:
            raw, replay = await rewrap_drained(response)
        except httpx.HTTPError as e:
            # Body broke mid-read: keep status and headers, relay an empty body.
            self.logger.debug(f"[{backend.name}] could not read {response.status_code} body: {e}")
            await response.aclose()
            raw, replay = b"", httpx.Response(
                status_code=response.status_code,
                headers=response.headers,
                stream=httpx.ByteStream(b""),
                request=response.request,
            )

        self.logger.debug(
            f"[{backend.name}] {operation.value} returned {response.status_code}: "
            f"{raw.decode('utf-8', errors='replace')}"
        )
        return replay
