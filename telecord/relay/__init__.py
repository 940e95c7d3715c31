"""Core of the relay: polling, routing, identity mapping and file relaying."""

from telecord.relay.dispatcher import AuthorizationGate, RelayDispatcher
from telecord.relay.files import FileRelayPipeline, RelayJob
from telecord.relay.gate import ReadinessGate
from telecord.relay.identity_map import Direction, DuplicateMappingError, IdentityMap
from telecord.relay.poller import UpdatePoller
from telecord.relay.router import EventKind, EventRouter, RelayEvent, classify

__all__ = [
    "AuthorizationGate",
    "Direction",
    "DuplicateMappingError",
    "EventKind",
    "EventRouter",
    "FileRelayPipeline",
    "IdentityMap",
    "ReadinessGate",
    "RelayDispatcher",
    "RelayEvent",
    "RelayJob",
    "UpdatePoller",
    "classify",
]
