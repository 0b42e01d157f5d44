"""Shared FastAPI dependencies."""

import asyncio
import hmac
import logging
from typing import Awaitable, Optional, TypeVar

from fastapi import Header, HTTPException, Request, status

from ai_gateway.core.dispatcher import Dispatcher
from ai_gateway.core.errors import ClientDisconnectedError
from ai_gateway.core.recorder import UsageRecorder
from ai_gateway.storage.repository import AnalyticsStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 0.5


def verify_request(request: Request, authorization: Optional[str] = Header(None)) -> None:
    """Require 'Authorization: Bearer <API_SECRET>'."""
    if not authorization or not authorization.startswith("Bearer "):
        logger.info("Missing or invalid Authorization header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Missing or invalid Authorization header",
        )

    token = authorization[len("Bearer "):]
    secret = request.app.state.settings.API_SECRET or ""
    if not hmac.compare_digest(token.encode("utf-8"), secret.encode("utf-8")):
        logger.info("Invalid API secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid API secret",
        )


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    return (x_user_id or "").strip() or "unknown"


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


def get_recorder(request: Request) -> UsageRecorder:
    return request.app.state.recorder


def get_store(request: Request) -> AnalyticsStore:
    return request.app.state.store


async def run_until_disconnect(request: Request, call: Awaitable[T]) -> T:
    """Await `call`, cancelling it if the client disconnects first.

    Raises:
        ClientDisconnectedError: If the client went away
    """
    task = asyncio.ensure_future(call)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info(f"Client disconnected from {request.url.path}; cancelling upstream call")
                task.cancel()
                raise ClientDisconnectedError()
    finally:
        if not task.done():
            task.cancel()
