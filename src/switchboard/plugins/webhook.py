"""Outbound webhook plugin."""

from __future__ import annotations

from typing import Any

import httpx

from switchboard.capabilities import Capability
from switchboard.extensions import CapabilityPlugin


async def send_webhook(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    url = str(params.get("url") or "").strip()
    if not url.startswith(("http://", "https://")):
        raise ValueError("url must be an http(s) URL")

    timeout = float(params.get("timeout_s") or 10)
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout)) as client:
        resp = await client.post(
            url,
            json=params.get("payload") or {},
            headers=params.get("headers") or None,
        )
    return {
        "url": url,
        "status_code": resp.status_code,
        "ok": resp.status_code < 400,
        "body": resp.text[:300],
    }


class WebhookPlugin(CapabilityPlugin):
    @property
    def name(self) -> str:
        return "webhook"

    @property
    def description(self) -> str:
        return "POST JSON payloads to external URLs"

    def capabilities(self) -> list[Capability]:
        return [
            Capability(
                name="sendWebhook",
                description="Send a JSON payload to a webhook URL",
                handler=send_webhook,
                parameters={
                    "type": "object",
                    "properties": {
                        "url": {"type": "string", "description": "Destination URL"},
                        "payload": {"type": "object", "description": "JSON body"},
                        "headers": {"type": "object", "description": "Extra request headers"},
                        "timeout_s": {"type": "number", "description": "Request timeout in seconds"},
                    },
                    "required": ["url", "payload"],
                },
            )
        ]
