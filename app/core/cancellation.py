from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

from starlette.requests import Request

from app.domain.exceptions import ClientDisconnectedError

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 0.5


async def run_until_disconnected(
    request: Request,
    coro: Coroutine[Any, Any, T],
    *,
    poll_interval: float = DISCONNECT_POLL_SECONDS,
) -> T:
    """
    Await `coro` while watching the inbound connection.

    If the client disconnects first, the work is cancelled (an in-flight
    outbound HTTP call is abandoned) and ClientDisconnectedError is raised.
    """

    task = asyncio.ensure_future(coro)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                task.cancel()
                await asyncio.wait({task})
                raise ClientDisconnectedError()
    finally:
        if not task.done():
            task.cancel()
