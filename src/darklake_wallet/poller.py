"""
poller.py - Fixed-interval trade status polling.

Policy:
- At most `max_retries` CheckTradeStatus calls.
- Terminal status (SETTLED, SLASHED, CANCELLED) -> return it, no more calls.
- Sleep `delay_ms` between attempts, never after the last one. No backoff.
- A failed call consumes its attempt. If it was the final attempt we return
  None instead of raising: "no definitive status" is not a crash.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Protocol

from .errors import GatewayError
from .events import EventListener, WorkflowEvent, null_listener
from .types import CheckTradeStatusRequest, CheckTradeStatusResponse

POLL_STATE = "POLL"


class StatusGateway(Protocol):
    async def check_trade_status(
        self, request: CheckTradeStatusRequest
    ) -> CheckTradeStatusResponse:
        ...


Sleeper = Callable[[float], Awaitable[None]]


async def poll_trade_status(
    gateway: StatusGateway,
    request: CheckTradeStatusRequest,
    max_retries: int = 5,
    delay_ms: int = 1000,
    sleep: Sleeper = asyncio.sleep,
    on_event: EventListener = null_listener,
) -> Optional[CheckTradeStatusResponse]:
    """Poll until a terminal status or the retry budget runs out."""
    if max_retries < 1:
        raise ValueError(f"max_retries must be >= 1, got {max_retries}")

    for attempt in range(1, max_retries + 1):
        is_last = attempt == max_retries
        try:
            response = await gateway.check_trade_status(request)
        except GatewayError as e:
            on_event(WorkflowEvent(
                POLL_STATE,
                "status check failed",
                {"attempt": f"{attempt}/{max_retries}", "error": str(e)},
                level="WARNING",
            ))
            if is_last:
                on_event(WorkflowEvent(
                    POLL_STATE,
                    "max retries reached without a definitive status",
                    level="ERROR",
                ))
                return None
        else:
            if response.status.is_terminal:
                on_event(WorkflowEvent(
                    POLL_STATE,
                    "trade status is final",
                    {"attempt": f"{attempt}/{max_retries}", "status": response.status.name},
                ))
                return response
            on_event(WorkflowEvent(
                POLL_STATE,
                "trade still pending",
                {"attempt": f"{attempt}/{max_retries}", "status": response.status.name},
            ))

        if not is_last:
            await sleep(delay_ms / 1000.0)

    on_event(WorkflowEvent(
        POLL_STATE,
        "retry budget exhausted before a terminal status",
        {"max_retries": max_retries},
        level="WARNING",
    ))
    return None
