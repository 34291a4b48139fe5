"""Initiator and responder sides of the exchange.

Each round:
1. The initiator works, sends the trigger, and waits for the acknowledgment.
2. The responder waits for the trigger, works, and sends the acknowledgment.

The two sides never share state. They stay in lockstep only because each
one blocks in receive() until the other has spoken.
"""

import enum
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

from pingpong.config import ExchangeConfig
from pingpong.connection import Connection


class InitiatorState(enum.Enum):
    READY = "READY"
    WORK = "WORK"
    SENT_TRIGGER = "SENT_TRIGGER"
    AWAIT_ACK = "AWAIT_ACK"
    DONE = "DONE"


class ResponderState(enum.Enum):
    SLEEP = "SLEEP"
    AWAIT_TRIGGER = "AWAIT_TRIGGER"
    READY = "READY"
    WORK = "WORK"
    SENT_ACK = "SENT_ACK"
    DONE = "DONE"


@dataclass
class RoleReport:
    """What one side did during the exchange."""

    role: str
    rounds: int = 0
    sent: list[str] = field(default_factory=list)
    received: list[str] = field(default_factory=list)
    state: Optional[enum.Enum] = None
    failed_at: Optional[float] = None  # time.monotonic() of the failure, if any


class _Role:
    name = ""
    initial_state: enum.Enum

    def __init__(
        self,
        connection: Connection,
        config: Optional[ExchangeConfig] = None,
        work: Optional[Callable[[], None]] = None,
    ):
        self.config = config or ExchangeConfig()
        self._connection: Optional[Connection] = connection.detach()
        self._work = work or self._simulate_work
        self.history: list[enum.Enum] = []
        self.report = RoleReport(self.name)
        self._enter(self.initial_state)

    @property
    def connection(self) -> Optional[Connection]:
        """The owned connection, or None once run() has finished."""
        return self._connection

    def _simulate_work(self) -> None:
        time.sleep(self.config.work_delay)

    def _enter(self, state: enum.Enum) -> None:
        self.state = state
        self.report.state = state
        self.history.append(state)

    def _say(self, text: str) -> None:
        print(f"[{self.name}] {text}", flush=True)

    def run(self) -> RoleReport:
        """Run every round, then release the connection.

        The connection is closed whether the rounds complete or not.

        Raises:
            TransportError: On the first failed send or receive.
        """
        conn = self._connection
        if conn is None:
            raise RuntimeError(f"{self.name} has already run")
        try:
            self._say(f"Initial state: {self.state.value}")
            self._exchange(conn)
            self._say("Finished.")
        except Exception:
            # Stamped before the close below wakes the peer.
            self.report.failed_at = time.monotonic()
            raise
        finally:
            conn.close()
            self._connection = None
        return self.report

    def _exchange(self, conn: Connection) -> None:
        raise NotImplementedError


class Initiator(_Role):
    """Side that speaks first each round."""

    name = "Initiator"
    initial_state = InitiatorState.READY

    def _exchange(self, conn: Connection) -> None:
        for i in range(self.config.rounds):
            self._say(f"--- Round {i + 1} ---")

            self._enter(InitiatorState.WORK)
            self._work()

            self._say(f"Sending {self.config.trigger}...")
            conn.send(self.config.trigger)
            self.report.sent.append(self.config.trigger)
            self._enter(InitiatorState.SENT_TRIGGER)

            self._say("Waiting for response...")
            self._enter(InitiatorState.AWAIT_ACK)
            # Any message counts as the acknowledgment.
            message = conn.receive()
            self.report.received.append(message)
            self._say(f"Received: {message}, entering READY")
            self._enter(InitiatorState.READY)
            self.report.rounds += 1

        self._enter(InitiatorState.DONE)


class Responder(_Role):
    """Side that listens first each round."""

    name = "Responder"
    initial_state = ResponderState.SLEEP

    @classmethod
    def dial(
        cls,
        config: Optional[ExchangeConfig] = None,
        work: Optional[Callable[[], None]] = None,
    ) -> "Responder":
        """Connect to the initiator's endpoint and return a responder owning the link.

        Raises:
            ConnectError: If the single connection attempt fails.
        """
        config = config or ExchangeConfig()
        with Connection.dial(config.host, config.port, config.dial_delay) as conn:
            return cls(conn, config, work)

    def _exchange(self, conn: Connection) -> None:
        for i in range(self.config.rounds):
            self._say(f"--- Round {i + 1} ---")

            self._say(f"Waiting for {self.config.trigger}...")
            message = conn.receive()
            self.report.received.append(message)
            self._say(f"Received: {message}, entering READY")
            self._enter(ResponderState.READY)

            self._enter(ResponderState.WORK)
            self._work()

            self._say(f"Sending {self.config.ack}...")
            conn.send(self.config.ack)
            self.report.sent.append(self.config.ack)
            self._enter(ResponderState.SENT_ACK)
            self.report.rounds += 1

            if i + 1 < self.config.rounds:
                self._enter(ResponderState.AWAIT_TRIGGER)

        self._enter(ResponderState.DONE)
