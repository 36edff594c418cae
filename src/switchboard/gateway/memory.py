"""In-process gateway that keeps the most recent messages it is asked to send."""

from __future__ import annotations

from collections import deque
from typing import Any

import structlog

from switchboard.gateway.base import EventGateway
from switchboard.gateway.models import AckStatus, Acknowledgment, OutboundMessage

logger = structlog.get_logger()


class InMemoryEventGateway(EventGateway):
    """Records responses and acknowledgments for local runs and tests.

    Only the most recent ``max_messages`` of each kind are kept.
    """

    def __init__(self, max_messages: int = 1000) -> None:
        self.responses: deque[OutboundMessage] = deque(maxlen=max_messages)
        self.acknowledgments: deque[Acknowledgment] = deque(maxlen=max_messages)

    async def send_response(
        self,
        type: str,
        payload: Any,
        correlation_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        message = OutboundMessage(
            type=type,
            payload=payload,
            correlation_id=correlation_id,
            metadata=dict(metadata or {}),
        )
        self.responses.append(message)
        logger.debug("gateway.memory.response", type=type, correlation_id=correlation_id)
        return message.id

    async def send_acknowledgment(
        self,
        event_id: str,
        status: AckStatus,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.acknowledgments.append(Acknowledgment(event_id, status, dict(details or {})))
        logger.debug("gateway.memory.ack", event_id=event_id, status=status)

    def acks_for(self, event_id: str) -> list[Acknowledgment]:
        return [ack for ack in self.acknowledgments if ack.event_id == event_id]

    def clear(self) -> None:
        self.responses.clear()
        self.acknowledgments.clear()
