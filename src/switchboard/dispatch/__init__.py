"""Decision engine: routes events, runs directives, acknowledges."""

from switchboard.dispatch.directives import (
    ActionDirective,
    CallCapability,
    NoOp,
    ScheduleWork,
    SendResponse,
    parse_directive,
)
from switchboard.dispatch.dispatcher import (
    PLACEHOLDER_RESULT,
    DispatchOutcome,
    Dispatcher,
    DispatchState,
)

__all__ = [
    "ActionDirective",
    "CallCapability",
    "DispatchOutcome",
    "DispatchState",
    "Dispatcher",
    "NoOp",
    "PLACEHOLDER_RESULT",
    "ScheduleWork",
    "SendResponse",
    "parse_directive",
]
