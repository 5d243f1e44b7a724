"""
Response Relay - hands an upstream response to the caller unchanged.
"""

from typing import AsyncIterator, List, Tuple

import httpx
from fastapi.responses import StreamingResponse

# Connection-level headers; the serving transport writes its own.
HOP_BY_HOP_HEADERS = {
    b"connection",
    b"keep-alive",
    b"proxy-authenticate",
    b"proxy-authorization",
    b"te",
    b"trailer",
    b"trailers",
    b"transfer-encoding",
    b"upgrade",
}


def relay_headers(upstream: httpx.Response) -> List[Tuple[bytes, bytes]]:
    """Upstream headers in their original order, repeated keys kept."""
    return [
        (name.lower(), value)
        for name, value in upstream.headers.raw
        if name.lower() not in HOP_BY_HOP_HEADERS
    ]


class RelayedResponse(StreamingResponse):
    """StreamingResponse that always releases its upstream, even if the caller left early."""

    def __init__(self, upstream: httpx.Response, content: AsyncIterator[bytes]):
        super().__init__(content=content, status_code=upstream.status_code)
        self.upstream = upstream

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.upstream.aclose()


def relay_response(upstream: httpx.Response) -> RelayedResponse:
    """
    Wrap an open upstream response as the caller's response.

    The body is streamed raw (never decoded or re-encoded), so
    Content-Length and Content-Encoding stay valid. The upstream response is
    closed once its body has been sent, or when sending fails at any point.
    """

    async def body() -> AsyncIterator[bytes]:
        try:
            async for chunk in upstream.aiter_raw():
                yield chunk
        finally:
            await upstream.aclose()

    relayed = RelayedResponse(upstream, body())
    # Set the ASGI header list directly: a Mapping would collapse repeated keys.
    relayed.raw_headers = relay_headers(upstream)
    return relayed
