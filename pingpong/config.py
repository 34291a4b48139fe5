"""Fixed settings shared by both sides of the exchange."""

from dataclasses import dataclass

HOST = "127.0.0.1"
BIND_HOST = "0.0.0.0"
PORT = 9889
ROUNDS = 6
BACKLOG = 1

TERMINATOR = b"\0"
TRIGGER = "PING"
ACK = "PONG"

RECV_SIZE = 4096
# Longest message accepted, terminator excluded
MAX_MESSAGE = 1024

# Seconds
WORK_DELAY = 1.0
DIAL_DELAY = 1.0
ACCEPT_POLL_INTERVAL = 1.0


@dataclass(frozen=True)
class ExchangeConfig:
    """Settings for one run of the exchange.

    Fixed at construction time; both roles and the orchestrator receive the
    same instance.
    """

    host: str = HOST  # Address the responder dials
    bind_host: str = BIND_HOST
    port: int = PORT  # 0 lets the OS pick a free port
    rounds: int = ROUNDS
    trigger: str = TRIGGER
    ack: str = ACK
    work_delay: float = WORK_DELAY
    dial_delay: float = DIAL_DELAY

    def __post_init__(self) -> None:
        if self.rounds < 1:
            raise ValueError(f"rounds must be at least 1, got {self.rounds}")
        terminator = TERMINATOR.decode("ascii")
        for name in ("trigger", "ack"):
            token = getattr(self, name)
            if not token or terminator in token:
                raise ValueError(f"{name} must be a non-empty token without NUL: {token!r}")
