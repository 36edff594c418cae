"""Event gateway boundary."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from switchboard.gateway.models import AckStatus


class EventGateway(ABC):
    """Outbound side of the event transport.

    Inbound delivery is a push: the transport calls ``Dispatcher.submit``.
    """

    @abstractmethod
    async def send_response(
        self,
        type: str,
        payload: Any,
        correlation_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Publish a response and return its message id."""

    @abstractmethod
    async def send_acknowledgment(
        self,
        event_id: str,
        status: AckStatus,
        details: dict[str, Any] | None = None,
    ) -> None:
        ...

    async def close(self) -> None:
        return None
