"""Action directives produced by the Master Model."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from switchboard.errors import InvalidDirective

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass(frozen=True)
class CallCapability:
    name: str | None
    params: dict[str, Any] | None
    context: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.name:
            raise InvalidDirective("executeFunction requires functionName")
        if not isinstance(self.params, dict):
            raise InvalidDirective("executeFunction requires params")


@dataclass(frozen=True)
class ScheduleWork:
    name: str | None
    data: dict[str, Any] | None
    options: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> None:
        if not self.name:
            raise InvalidDirective("scheduleJob requires jobName")
        if not isinstance(self.data, dict):
            raise InvalidDirective("scheduleJob requires data")


@dataclass(frozen=True)
class SendResponse:
    content: Any
    response_type: str = "response"


@dataclass(frozen=True)
class NoOp:
    reason: str = ""


ActionDirective = CallCapability | ScheduleWork | SendResponse | NoOp


def parse_directive(text: str) -> ActionDirective:
    """Turn model output into a directive.

    Output that is not JSON, or JSON of an unknown shape, becomes a
    ``SendResponse`` carrying the original text. Missing required fields are
    kept as ``None`` and rejected by ``validate()`` at execution time.
    """
    raw = text or ""
    candidate = raw.strip()
    fenced = _FENCE.match(candidate)
    if fenced:
        candidate = fenced.group(1)

    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return SendResponse(content=raw)
    if not isinstance(data, dict):
        return SendResponse(content=raw)

    action = data.get("action")
    if action == "executeFunction":
        params = data.get("params")
        context = data.get("context")
        return CallCapability(
            name=data.get("functionName") or None,
            params=params if isinstance(params, dict) else None,
            context=context if isinstance(context, dict) else {},
        )
    if action == "scheduleJob":
        job_data = data.get("data")
        options = data.get("options")
        return ScheduleWork(
            name=data.get("jobName") or None,
            data=job_data if isinstance(job_data, dict) else None,
            options=options if isinstance(options, dict) else {},
        )
    if action == "sendResponse":
        return SendResponse(
            content=data.get("content", ""),
            response_type=str(data.get("type") or "response"),
        )
    if action == "none":
        return NoOp(reason=str(data.get("reason") or ""))

    return SendResponse(content=raw)
