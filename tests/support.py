"""Helpers shared by the test modules."""

import socket
import threading
from typing import Any, Callable, Optional

from pingpong.config import ExchangeConfig

LOCALHOST = "127.0.0.1"


def fast_config(port: int = 0, rounds: int = 3, **kwargs: Any) -> ExchangeConfig:
    """Config on loopback with no simulated delays."""
    settings = dict(host=LOCALHOST, bind_host=LOCALHOST, work_delay=0, dial_delay=0)
    settings.update(kwargs)
    return ExchangeConfig(port=port, rounds=rounds, **settings)


def free_port() -> int:
    """Return a loopback port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((LOCALHOST, 0))
        return s.getsockname()[1]


class Background:
    """Run a callable on a thread and keep its result or exception."""

    def __init__(self, fn: Callable[[], Any]):
        self._fn = fn
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        try:
            self.result = self._fn()
        except BaseException as e:
            self.error = e

    def join(self, timeout: float = 10.0) -> "Background":
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise AssertionError("background call did not finish")
        return self

    def is_alive(self) -> bool:
        return self._thread.is_alive()
