"""Dispatcher — decides what to do with each inbound event.

Per event:
1. Route: Master Model decision unless the type is reserved or no master exists
2. Execute: run the directive, or the deterministic route for the type
3. Respond: reply through the gateway when the event asked for one
4. Acknowledge: exactly once, ``success`` or ``error``

A failing Master Model never fails the event; the event is routed
deterministically instead.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog

from switchboard.capabilities import CapabilityRegistry, serialize_result
from switchboard.config import DispatchConfig
from switchboard.dispatch.directives import (
    ActionDirective,
    CallCapability,
    NoOp,
    ScheduleWork,
    SendResponse,
    parse_directive,
)
from switchboard.dispatch.prompts import build_directive_instruction, build_event_context
from switchboard.errors import (
    ComponentUnavailable,
    InvalidDirective,
    JobNotFound,
    MasterModelFailure,
    SwitchboardError,
)
from switchboard.gateway import AckStatus, Event, EventGateway
from switchboard.jobs import JobQueue
from switchboard.llm import MASTER_MODEL_ID, ConversationTurn, ModelRegistry
from switchboard.llm.types import coerce_turns
from switchboard.logging import bind_event_context, clear_event_context

logger = structlog.get_logger()

PLACEHOLDER_RESULT: dict[str, Any] = {"received": True, "processed": False}


class DispatchState(StrEnum):
    RECEIVED = "received"
    ROUTED = "routed"
    EXECUTING = "executing"
    RESPONDING = "responding"
    ACKNOWLEDGED = "acknowledged"
    ERRORED = "errored"


@dataclass
class DispatchOutcome:
    """What happened to one event."""

    event_id: str
    event_type: str
    state: DispatchState = DispatchState.RECEIVED
    result: Any = None
    ack_status: AckStatus = "pending"
    used_master_model: bool = False
    fell_back: bool = False
    response_id: str | None = None
    transitions: list[DispatchState] = field(default_factory=lambda: [DispatchState.RECEIVED])

    def advance(self, state: DispatchState) -> None:
        self.state = state
        self.transitions.append(state)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "state": str(self.state),
            "result": self.result,
            "ack_status": self.ack_status,
            "used_master_model": self.used_master_model,
            "fell_back": self.fell_back,
            "response_id": self.response_id,
        }


Route = Callable[[Event], Awaitable[Any]]


class Dispatcher:
    """Routes events to capabilities, jobs or models and acknowledges them."""

    def __init__(
        self,
        capabilities: CapabilityRegistry | None,
        models: ModelRegistry | None = None,
        jobs: JobQueue | None = None,
        gateway: EventGateway | None = None,
        *,
        config: DispatchConfig | None = None,
    ) -> None:
        self.capabilities = capabilities
        self.models = models
        self.jobs = jobs
        self.gateway = gateway
        self.config = config or DispatchConfig()

        limit = self.config.max_concurrent_decisions
        self._decision_slots = asyncio.Semaphore(limit) if limit > 0 else None
        self._tasks: set[asyncio.Task[DispatchOutcome]] = set()

        self.routes: dict[str, Route] = {
            "function:execute": self._execute_function,
            "function:execute:withmodel": self._execute_function_with_model,
            "job:schedule": self._schedule_job,
            "job:status": self._job_status,
            "job:result": self._job_result,
            "llm:generate": self._llm_generate,
            "llm:completion": self._llm_completion,
            "llm:chat": self._llm_chat,
        }

    # ── Entry points ────────────────────────────────────────────────

    def submit(self, event: Event) -> asyncio.Task[DispatchOutcome]:
        """Handle an event in its own task. Events are not ordered."""
        task = asyncio.create_task(self.handle_event(event), name=f"dispatch-{event.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight event to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def uses_master_model(self, event: Event) -> bool:
        if not self.config.master_model_enabled or self.models is None:
            return False
        if not self.models.has_master():
            return False
        return not any(event.type.startswith(prefix) for prefix in self.config.reserved_prefixes)

    async def handle_event(self, event: Event) -> DispatchOutcome:
        bind_event_context(event.id, event.type)
        outcome = DispatchOutcome(event_id=event.id, event_type=event.type)
        logger.info("dispatch.received")
        try:
            try:
                outcome.result = await self._process(event, outcome)
                outcome.ack_status = "success"
            except Exception as exc:
                logger.error("dispatch.error", error=f"{type(exc).__name__}: {exc}")
                outcome.result = exc.to_dict() if isinstance(exc, SwitchboardError) else {"error": str(exc)}
                outcome.ack_status = "error"
                outcome.advance(DispatchState.ERRORED)

            if outcome.ack_status == "success":
                outcome.advance(DispatchState.RESPONDING)
            outcome.response_id = await self._reply(event, outcome.result)
            await self._acknowledge(event, outcome)
            if outcome.ack_status == "success":
                outcome.advance(DispatchState.ACKNOWLEDGED)

            logger.info(
                "dispatch.done",
                state=str(outcome.state),
                ack=outcome.ack_status,
                master=outcome.used_master_model,
                fell_back=outcome.fell_back,
            )
            return outcome
        finally:
            clear_event_context()

    async def _process(self, event: Event, outcome: DispatchOutcome) -> Any:
        outcome.advance(DispatchState.ROUTED)
        if self.uses_master_model(event):
            try:
                result = await self._decide(event, outcome)
                outcome.used_master_model = True
                return result
            except Exception as exc:
                failure = MasterModelFailure(f"{type(exc).__name__}: {exc}")
                logger.warning("dispatch.master.failed", error=str(failure), fallback="deterministic")
                outcome.fell_back = True
                outcome.advance(DispatchState.ROUTED)

        route = self.routes.get(event.type)
        outcome.advance(DispatchState.EXECUTING)
        if route is None:
            logger.info("dispatch.unhandled_type")
            return dict(PLACEHOLDER_RESULT)
        logger.info("dispatch.route", route=event.type)
        return await route(event)

    # ── Master Model path ───────────────────────────────────────────

    async def _decide(self, event: Event, outcome: DispatchOutcome) -> Any:
        if self._decision_slots is None:
            return await self._decide_unbounded(event, outcome)
        async with self._decision_slots:
            return await self._decide_unbounded(event, outcome)

    async def _decide_unbounded(self, event: Event, outcome: DispatchOutcome) -> Any:
        models = self._require_models()
        capabilities = self._require_capabilities()

        names = capabilities.names()
        turns = [
            ConversationTurn(role="user", content=build_directive_instruction(names)),
            ConversationTurn(role="user", content=build_event_context(event)),
        ]

        tools = capabilities.to_openai_tools() or None
        response = await models.send(turns, model_id=MASTER_MODEL_ID, tools=tools)

        tool_call = response.tool_call
        if tool_call is not None:
            outcome.advance(DispatchState.EXECUTING)
            logger.info("dispatch.master.tool_call", tool=tool_call.name)
            result = await capabilities.invoke(
                tool_call.name,
                tool_call.arguments,
                {"event_id": event.id, "event_type": event.type},
            )
            final, _ = await models.follow_up(
                turns,
                response,
                tool_call,
                serialize_result(result),
                model_id=MASTER_MODEL_ID,
            )
            return await self.execute_directive(event, SendResponse(content=final.content))

        directive = parse_directive(response.content)
        logger.info("dispatch.master.directive", directive=type(directive).__name__)
        outcome.advance(DispatchState.EXECUTING)
        return await self.execute_directive(event, directive)

    async def execute_directive(self, event: Event, directive: ActionDirective) -> Any:
        if isinstance(directive, CallCapability):
            directive.validate()
            capabilities = self._require_capabilities()
            context = {**directive.context, "event_id": event.id, "event_type": event.type}
            return await capabilities.invoke(directive.name, directive.params, context)

        if isinstance(directive, ScheduleWork):
            jobs = self._require_jobs()
            directive.validate()
            job_id = await jobs.submit(directive.name, directive.data, directive.options)
            return {"job_id": job_id}

        if isinstance(directive, SendResponse):
            return {"content": directive.content, "type": directive.response_type}

        if isinstance(directive, NoOp):
            return {"action": "none", "reason": directive.reason}

        raise InvalidDirective(f"Unknown directive: {directive!r}")

    # ── Deterministic routes ────────────────────────────────────────

    async def _execute_function(self, event: Event) -> Any:
        capabilities = self._require_capabilities()
        payload = event.payload
        return await capabilities.invoke(
            payload.get("name", ""),
            payload.get("params") or {},
            payload.get("context") or {},
        )

    async def _execute_function_with_model(self, event: Event) -> Any:
        capabilities = self._require_capabilities()
        models = self._require_models()
        payload = event.payload
        name = payload.get("name", "")
        capability = capabilities.resolve(name)
        model_id = payload.get("model_id") or payload.get("modelId") or capability.preferred_model_id
        context = {
            **(payload.get("context") or {}),
            "llm": {"registry": models, "model_id": model_id},
        }
        return await capabilities.invoke(name, payload.get("params") or {}, context)

    async def _schedule_job(self, event: Event) -> Any:
        jobs = self._require_jobs()
        payload = event.payload
        if not payload.get("name"):
            raise InvalidDirective("job:schedule requires a job name")
        job_id = await jobs.submit(payload["name"], payload.get("data") or {}, _job_options(payload))
        return {"job_id": job_id}

    async def _job_status(self, event: Event) -> Any:
        jobs = self._require_jobs()
        job_id = _job_id(event)
        return {"job_id": job_id, "status": await jobs.status(job_id)}

    async def _job_result(self, event: Event) -> Any:
        jobs = self._require_jobs()
        job_id = _job_id(event)
        if not job_id:
            raise JobNotFound("")
        result = await jobs.result(job_id)
        return {"job_id": job_id, "result": result.to_dict()}

    async def _llm_generate(self, event: Event) -> Any:
        models = self._require_models()
        payload = event.payload
        response, _ = await models.send_with_tools(
            coerce_turns(payload.get("messages") or []),
            overrides=payload.get("options"),
            model_id=_model_id(payload),
            context={"event_id": event.id, "event_type": event.type},
        )
        return response.to_dict()

    async def _llm_completion(self, event: Event) -> Any:
        models = self._require_models()
        payload = event.payload
        content = await models.generate_completion(
            payload.get("prompt", ""),
            overrides=payload.get("options"),
            model_id=_model_id(payload),
        )
        return {"content": content}

    async def _llm_chat(self, event: Event) -> Any:
        models = self._require_models()
        payload = event.payload
        result = await models.chat(
            payload.get("message", ""),
            payload.get("history") or [],
            overrides=payload.get("options"),
            model_id=_model_id(payload),
            context={"event_id": event.id, "event_type": event.type},
        )
        return result.to_dict()

    # ── Responding ──────────────────────────────────────────────────

    async def _reply(self, event: Event, result: Any) -> str | None:
        if self.gateway is None or not event.reply_to:
            return None
        try:
            return await self.gateway.send_response(
                "response",
                result,
                correlation_id=event.id,
                metadata={"original_type": event.type, "reply_to": event.reply_to},
            )
        except Exception as exc:
            logger.warning("dispatch.reply.failed", error=str(exc))
            return None

    async def _acknowledge(self, event: Event, outcome: DispatchOutcome) -> None:
        if self.gateway is None:
            return
        if outcome.ack_status == "success":
            details: dict[str, Any] = {"processed": True}
        else:
            details = dict(outcome.result) if isinstance(outcome.result, dict) else {}
        try:
            await self.gateway.send_acknowledgment(event.id, outcome.ack_status, details)
        except Exception as exc:
            logger.warning("dispatch.ack.failed", status=outcome.ack_status, error=str(exc))

    # ── Collaborators ───────────────────────────────────────────────

    def _require_capabilities(self) -> CapabilityRegistry:
        if self.capabilities is None:
            raise ComponentUnavailable("Capability registry")
        return self.capabilities

    def _require_models(self) -> ModelRegistry:
        if self.models is None:
            raise ComponentUnavailable("Model registry")
        return self.models

    def _require_jobs(self) -> JobQueue:
        if self.jobs is None:
            raise ComponentUnavailable("Job queue")
        return self.jobs


_JOB_OPTION_KEYS = ("priority", "delay", "attempts", "backoff", "jobId", "job_id")


def _job_options(payload: dict[str, Any]) -> dict[str, Any]:
    """Job options given flat on the payload, overridden by a nested ``options``."""
    options = {key: payload[key] for key in _JOB_OPTION_KEYS if key in payload}
    options.update(payload.get("options") or {})
    return options


def _job_id(event: Event) -> str:
    return str(event.payload.get("job_id") or event.payload.get("jobId") or "")


def _model_id(payload: dict[str, Any]) -> str | None:
    return payload.get("model_id") or payload.get("modelId")
