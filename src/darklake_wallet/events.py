"""
Progress events emitted by the workflow and the poller.

The workflow never prints. It hands each event to a listener; `log_event`
renders them with loguru, tests collect them with EventRecorder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from loguru import logger


@dataclass
class WorkflowEvent:
    state: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    level: str = "INFO"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_log_line(self) -> str:
        parts = [self.state, self.message]
        parts.extend(f"{k}={v}" for k, v in self.details.items())
        return " | ".join(parts)


EventListener = Callable[[WorkflowEvent], None]


def log_event(event: WorkflowEvent) -> None:
    """Default listener."""
    logger.log(event.level, event.to_log_line())


def null_listener(event: WorkflowEvent) -> None:
    return None


class EventRecorder:
    """Listener that keeps every event, optionally forwarding to another listener."""

    def __init__(self, forward: EventListener = null_listener):
        self.events: List[WorkflowEvent] = []
        self._forward = forward

    def __call__(self, event: WorkflowEvent) -> None:
        self.events.append(event)
        self._forward(event)

    @property
    def states(self) -> List[str]:
        return [e.state for e in self.events]

    def messages(self, state: str) -> List[str]:
        return [e.message for e in self.events if e.state == state]
