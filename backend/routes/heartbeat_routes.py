"""
Heartbeat Routes - write endpoints mirrored to every backend
"""

import json

from fastapi import APIRouter, Depends, HTTPException, Request

from app_context import RelayContext, get_context
from relay_client import API_PREFIX, Operation
from relay_errors import InvalidPayloadError, PrimaryUnavailableError
from response_relay import relay_response

router = APIRouter()

HEARTBEATS_PATH = API_PREFIX + Operation.HEARTBEAT.path
HEARTBEATS_BULK_PATH = API_PREFIX + Operation.HEARTBEATS_BULK.path


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def validate_json_body(body: bytes) -> None:
    """
    Raise InvalidPayloadError unless `body` is one well-formed JSON document.

    Only UTF-8 without a byte order mark is accepted; json.loads would
    otherwise sniff UTF-16/32 from raw bytes.
    """
    try:
        json.loads(body.decode("utf-8"), parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise InvalidPayloadError(f"invalid JSON: {e}") from e


async def relay_write(operation: Operation, request: Request, context: RelayContext):
    body = await request.body()
    try:
        validate_json_body(body)
    except InvalidPayloadError as e:
        context.logger.debug(f"Rejected {operation.value}: {e}")
        raise HTTPException(status_code=InvalidPayloadError.status_code, detail="Invalid JSON")

    context.logger.debug(f"Received {operation.value}: {body.decode('utf-8', errors='replace')}")

    try:
        outcome = await context.coordinator.dispatch(
            operation, body, request.headers.get("user-agent"),
        )
    except PrimaryUnavailableError as e:
        context.logger.debug(f"Answering 500 for {operation.value}: {e}")
        raise HTTPException(status_code=PrimaryUnavailableError.status_code, detail="Internal server error")

    return relay_response(outcome.response)


@router.post(HEARTBEATS_PATH)
async def post_heartbeat(request: Request, context: RelayContext = Depends(get_context)):
    """Relay a single heartbeat; the caller gets the primary backend's answer."""
    return await relay_write(Operation.HEARTBEAT, request, context)


@router.post(HEARTBEATS_BULK_PATH)
async def post_heartbeats_bulk(request: Request, context: RelayContext = Depends(get_context)):
    """Relay a JSON array of heartbeats."""
    return await relay_write(Operation.HEARTBEATS_BULK, request, context)
