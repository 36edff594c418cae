"""Gateway event models."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Literal

AckStatus = Literal["success", "error", "pending"]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Event:
    """An inbound event; ``type`` is the routing key."""

    id: str
    type: str
    timestamp: int
    payload: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] | None = None
    reply_to: str | None = None

    @classmethod
    def create(
        cls,
        type: str,
        payload: dict[str, Any] | None = None,
        *,
        id: str | None = None,
        timestamp: int | None = None,
        metadata: dict[str, Any] | None = None,
        reply_to: str | None = None,
    ) -> Event:
        return cls(
            id=id or str(uuid.uuid4()),
            type=type,
            timestamp=timestamp if timestamp is not None else now_ms(),
            payload=dict(payload or {}),
            metadata=metadata,
            reply_to=reply_to,
        )

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Event:
        """Parse a wire envelope. ``replyTo`` is accepted as an alias."""
        return cls.create(
            str(raw["type"]),
            raw.get("payload") or {},
            id=raw.get("id"),
            timestamp=raw.get("timestamp"),
            metadata=raw.get("metadata"),
            reply_to=raw.get("reply_to") or raw.get("replyTo"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp,
            "payload": self.payload,
            "metadata": self.metadata,
            "reply_to": self.reply_to,
        }


@dataclass
class Acknowledgment:
    event_id: str
    status: AckStatus
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"event_id": self.event_id, "status": self.status, "details": self.details}


@dataclass
class OutboundMessage:
    """A response envelope sent back through the gateway."""

    type: str
    payload: Any
    correlation_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "timestamp": self.timestamp,
            "payload": self.payload,
            "correlation_id": self.correlation_id,
            "metadata": self.metadata,
        }
