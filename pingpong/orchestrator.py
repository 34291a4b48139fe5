"""Runs both sides of the exchange and reports the outcome.

Provides:
- A listening endpoint for the initiator
- The responder in its own execution context (thread or separate process)
- The initiator on the calling thread once the responder has connected
- Earliest-failure reporting across both sides
"""

import dataclasses
import os
import subprocess
import sys
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from pingpong.config import ACCEPT_POLL_INTERVAL, ACK, BACKLOG, ROUNDS, TRIGGER, ExchangeConfig
from pingpong.endpoint import ListeningEndpoint
from pingpong.errors import ResponderExitError
from pingpong.roles import Initiator, Responder, RoleReport

CONTEXTS = ("thread", "process")

# Package parent, so a child interpreter can import pingpong without installation
PACKAGE_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@dataclass
class ExchangeResult:
    """Outcome of a completed exchange."""

    initiator: RoleReport
    responder: Optional[RoleReport]  # None when the responder ran in another process
    responder_returncode: Optional[int] = None


@dataclass
class _Failure:
    role: str
    error: BaseException
    at: float


def _failure(report: Optional[RoleReport], name: str, error: BaseException) -> _Failure:
    """Use the role's own failure time when it got far enough to record one."""
    if report is not None and report.failed_at is not None:
        return _Failure(name, error, report.failed_at)
    return _Failure(name, error, time.monotonic())


class _ResponderThread:
    """Runs the responder on a thread in this process."""

    def __init__(
        self,
        config: ExchangeConfig,
        work: Optional[Callable[[], None]],
        on_failure: Callable[[], None],
    ):
        self._config = config
        self._work = work
        self._on_failure = on_failure
        self._thread = threading.Thread(target=self._run, name="responder", daemon=True)
        self.report: Optional[RoleReport] = None
        self.failure: Optional[_Failure] = None
        self.returncode: Optional[int] = None

    def _run(self) -> None:
        responder: Optional[Responder] = None
        try:
            responder = Responder.dial(self._config, self._work)
            self.report = responder.run()
        except Exception as e:
            self.failure = _failure(responder and responder.report, "responder", e)
            self._on_failure()

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        """Nothing to signal: the thread exits once its link or the endpoint closes."""

    def wait(self) -> None:
        self._thread.join()


class _ResponderProcess:
    """Runs the responder as ``python -m pingpong respond`` in a child process."""

    def __init__(self, config: ExchangeConfig, on_failure: Callable[[], None]):
        self._config = config
        self._on_failure = on_failure
        self._proc: Optional[subprocess.Popen] = None
        self._watcher = threading.Thread(target=self._watch, name="responder-watch", daemon=True)
        self.report: Optional[RoleReport] = None
        self.failure: Optional[_Failure] = None
        self.returncode: Optional[int] = None

    def _command(self) -> list[str]:
        return [
            sys.executable,
            "-m",
            "pingpong",
            "respond",
            "--host",
            self._config.host,
            "--port",
            str(self._config.port),
            "--work-delay",
            str(self._config.work_delay),
            "--dial-delay",
            str(self._config.dial_delay),
        ]

    def start(self) -> None:
        env = os.environ.copy()
        pythonpath = env.get("PYTHONPATH")
        env["PYTHONPATH"] = PACKAGE_ROOT + (os.pathsep + pythonpath if pythonpath else "")

        self._proc = subprocess.Popen(self._command(), env=env)
        print(f"Started responder with PID {self._proc.pid}", flush=True)
        self._watcher.start()

    def _watch(self) -> None:
        returncode = self._proc.wait()
        self.returncode = returncode
        if returncode != 0:
            self.failure = _Failure("responder", ResponderExitError(returncode), time.monotonic())
            self._on_failure()

    def stop(self) -> None:
        """Terminate the child if it is still running."""
        if self._proc is not None and self._proc.poll() is None:
            print(f"Terminating responder (PID {self._proc.pid})", flush=True)
            self._proc.terminate()

    def wait(self) -> None:
        self._watcher.join()


class Orchestrator:
    """Wires the endpoint and both roles together for one exchange."""

    def __init__(
        self,
        config: Optional[ExchangeConfig] = None,
        context: str = "thread",
        work: Optional[Callable[[], None]] = None,
        poll_interval: float = ACCEPT_POLL_INTERVAL,
    ):
        """Create an orchestrator.

        Args:
            config: Exchange settings. Defaults to the fixed constants.
            context: "thread" to run the responder on a thread, "process" to
                run it as a separate interpreter.
            work: Simulated work for both roles. Only used in thread context;
                a separate process always sleeps for ``config.work_delay``.
            poll_interval: How often a blocked accept() checks for shutdown.
        """
        if context not in CONTEXTS:
            raise ValueError(f"context must be one of {CONTEXTS}, got {context!r}")
        config = config or ExchangeConfig()
        if context == "process" and (
            config.rounds != ROUNDS or config.trigger != TRIGGER or config.ack != ACK
        ):
            raise ValueError("a responder process always uses the fixed rounds and tokens")
        self.config = config
        self.context = context
        self._work = work
        self._poll_interval = poll_interval

    def run(self) -> ExchangeResult:
        """Run the exchange to completion.

        Returns:
            ExchangeResult with both sides' reports.

        Raises:
            PingPongError: The earliest failure from either side.
        """
        with ListeningEndpoint(
            self.config.bind_host, self.config.port, BACKLOG, self._poll_interval
        ) as endpoint:
            # The responder must dial the port actually bound.
            config = dataclasses.replace(self.config, port=endpoint.port)
            print(f"Listening on {config.bind_host}:{endpoint.port}", flush=True)

            # A responder that fails before connecting would leave accept()
            # waiting forever, so its failure closes the endpoint.
            if self.context == "thread":
                responder = _ResponderThread(config, self._work, endpoint.close)
            else:
                responder = _ResponderProcess(config, endpoint.close)
            responder.start()

            failures: list[_Failure] = []
            initiator: Optional[Initiator] = None
            report: Optional[RoleReport] = None
            try:
                with endpoint.accept() as conn:
                    initiator = Initiator(conn, config, self._work)
                    report = initiator.run()
            except Exception as e:
                failures.append(_failure(initiator and initiator.report, "initiator", e))
                # A responder still queued in the backlog is reset by the close;
                # one in another process is terminated.
                endpoint.close()
                responder.stop()

            responder.wait()

        if responder.failure is not None:
            failures.append(responder.failure)
        if failures:
            first = min(failures, key=lambda f: f.at)
            raise first.error

        return ExchangeResult(
            initiator=report,
            responder=responder.report,
            responder_returncode=responder.returncode,
        )
