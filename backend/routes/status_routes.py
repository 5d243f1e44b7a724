"""
Status Routes - read-only summary from the primary backend
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app_context import RelayContext, get_context
from relay_client import API_PREFIX, Operation, TransportFailure
from relay_errors import PrimaryUnavailableError
from resilience import fallback
from response_relay import relay_response
from schemas import StatusBarResponse

router = APIRouter()

STATUS_TODAY_PATH = API_PREFIX + Operation.STATUS_TODAY.path


def empty_status_response(args, kwargs, error) -> JSONResponse:
    """Well-formed "nothing tracked today" answer used when the primary is down."""
    context = args[0]
    context.logger.debug(f"Primary backend error: {error}")
    return JSONResponse(StatusBarResponse().model_dump())


@fallback(fallback_func=empty_status_response, exceptions=(PrimaryUnavailableError,), log_error=False)
async def relay_status_today(context: RelayContext, user_agent: Optional[str]):
    # Reads go to the primary only.
    outcome = await context.relay_client.call(
        Operation.STATUS_TODAY, context.registry.primary, user_agent=user_agent,
    )
    if isinstance(outcome, TransportFailure):
        raise PrimaryUnavailableError(
            f"primary backend {outcome.backend.name} unreachable", cause=outcome.error,
        )
    return relay_response(outcome.response)


@router.get(STATUS_TODAY_PATH)
async def get_status_bar_today(request: Request, context: RelayContext = Depends(get_context)):
    """Today's coding summary as reported by the primary backend."""
    return await relay_status_today(context, request.headers.get("user-agent"))
