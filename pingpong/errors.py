"""Exceptions raised by the exchange.

None of these are recovered locally. Each one aborts the side that raised it.
"""

from typing import Optional


class PingPongError(Exception):
    """Base class for all exchange failures."""


class BindError(PingPongError):
    """The listening socket could not be created or bound."""


class ListenError(PingPongError):
    """The bound socket could not enter the listening state."""


class AcceptError(PingPongError):
    """Accepting the peer failed, or the endpoint was closed while waiting."""


class ConnectError(PingPongError):
    """The responder could not reach the listening endpoint."""


class TransportError(PingPongError):
    """A send or receive failed, or the peer closed the connection."""


class ResponderExitError(PingPongError):
    """The responder process exited with a non-zero status."""

    def __init__(self, returncode: int, message: Optional[str] = None):
        self.returncode = returncode
        super().__init__(message or f"responder exited with code {returncode}")


def describe(operation: str, exc: OSError) -> str:
    """Format an OS failure as ``"<operation>: <reason>"``."""
    reason = exc.strerror or str(exc) or type(exc).__name__
    return f"{operation}: {reason}"
