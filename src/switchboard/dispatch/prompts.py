"""Instruction and context turns for the Master Model decision path."""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from switchboard.gateway.models import Event

_DIRECTIVE_FORMATS = """You can analyze the message and decide what to do with it. You have these capabilities:
1. Execute functions by returning a JSON object with {"action": "executeFunction", "functionName": "name", "params": {}}
2. Schedule jobs by returning {"action": "scheduleJob", "jobName": "name", "data": {}, "options": {}}
3. Send a response message by returning {"action": "sendResponse", "content": "your message", "type": "responseType"}
4. Do nothing by returning {"action": "none", "reason": "reason for inaction"}

Reply with exactly one JSON object and nothing else."""


def _names(capability_names: Sequence[str]) -> str:
    return ", ".join(capability_names) if capability_names else "None"


def build_directive_instruction(capability_names: Sequence[str]) -> str:
    return f"{_DIRECTIVE_FORMATS}\n\nAvailable functions: {_names(capability_names)}"


def build_event_context(event: Event) -> str:
    timestamp = datetime.fromtimestamp(event.timestamp / 1000, tz=UTC).isoformat()
    payload = json.dumps(event.payload, indent=2, default=str)
    return (
        "Received message:\n"
        f"Type: {event.type}\n"
        f"ID: {event.id}\n"
        f"Timestamp: {timestamp}\n"
        f"Payload: {payload}\n"
    )
