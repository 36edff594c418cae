"""Gateway that delivers responses and acknowledgments over HTTP."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from switchboard.gateway.base import EventGateway
from switchboard.gateway.models import AckStatus, OutboundMessage, now_ms

logger = structlog.get_logger()


class WebhookEventGateway(EventGateway):
    """POSTs JSON envelopes to the configured response and ack URLs.

    A missing URL falls back to logging the envelope. Delivery failures are
    logged and reported through the boolean returned by :meth:`post`.
    """

    def __init__(
        self,
        *,
        response_url: str | None = None,
        ack_url: str | None = None,
        timeout_s: int = 10,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.response_url = (response_url or "").strip() or None
        self.ack_url = (ack_url or "").strip() or self.response_url
        self.timeout_s = max(1, int(timeout_s))
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_s))
        return self._client

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
        await self.post(self.response_url, message.to_dict(), kind="response")
        return message.id

    async def send_acknowledgment(
        self,
        event_id: str,
        status: AckStatus,
        details: dict[str, Any] | None = None,
    ) -> None:
        envelope = {
            "id": event_id,
            "type": "acknowledgment",
            "timestamp": now_ms(),
            "payload": dict(details or {}),
            "correlation_id": event_id,
            "status": status,
            "metadata": {},
        }
        await self.post(self.ack_url, envelope, kind="ack")

    async def post(self, url: str | None, envelope: dict[str, Any], *, kind: str) -> bool:
        if not url:
            logger.info(
                "gateway.output.log",
                kind=kind,
                type=envelope.get("type"),
                correlation_id=envelope.get("correlation_id"),
            )
            return True

        try:
            response = await self.client.post(url, json=envelope)
            if response.status_code >= 400:
                logger.warning(
                    "gateway.output.webhook.failed",
                    kind=kind,
                    status_code=response.status_code,
                    body=response.text[:300],
                )
                return False
            return True
        except httpx.HTTPError as exc:
            logger.warning("gateway.output.webhook.error", kind=kind, url=url, error=str(exc))
            return False

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
