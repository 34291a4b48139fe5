"""Deterministic turn-taking between two peers over a single TCP connection."""

from pingpong.config import ExchangeConfig
from pingpong.connection import Connection
from pingpong.endpoint import ListeningEndpoint
from pingpong.errors import (
    AcceptError,
    BindError,
    ConnectError,
    ListenError,
    PingPongError,
    ResponderExitError,
    TransportError,
)
from pingpong.orchestrator import ExchangeResult, Orchestrator
from pingpong.roles import Initiator, Responder, RoleReport

__all__ = [
    "AcceptError",
    "BindError",
    "ConnectError",
    "Connection",
    "ExchangeConfig",
    "ExchangeResult",
    "Initiator",
    "ListenError",
    "ListeningEndpoint",
    "Orchestrator",
    "PingPongError",
    "Responder",
    "ResponderExitError",
    "RoleReport",
    "TransportError",
]
