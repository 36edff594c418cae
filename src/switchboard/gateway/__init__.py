"""Event gateway boundary and its implementations."""

from switchboard.gateway.base import EventGateway
from switchboard.gateway.memory import InMemoryEventGateway
from switchboard.gateway.models import Acknowledgment, AckStatus, Event, OutboundMessage
from switchboard.gateway.webhook import WebhookEventGateway

__all__ = [
    "AckStatus",
    "Acknowledgment",
    "Event",
    "EventGateway",
    "InMemoryEventGateway",
    "OutboundMessage",
    "WebhookEventGateway",
]
