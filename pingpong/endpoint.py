"""TCP listening endpoint that hands out one connection per accept()."""

import socket
import threading

from pingpong.config import ACCEPT_POLL_INTERVAL, BACKLOG, BIND_HOST, PORT
from pingpong.connection import Connection
from pingpong.errors import AcceptError, BindError, ListenError, describe


class ListeningEndpoint:
    """Bound, listening TCP socket.

    The socket is bound and listening as soon as the constructor returns, so
    a peer may dial before accept() is called.

    accept() waits in short timeouts so that close() from another thread
    wakes it up with AcceptError instead of leaving it blocked.
    """

    def __init__(
        self,
        host: str = BIND_HOST,
        port: int = PORT,
        backlog: int = BACKLOG,
        poll_interval: float = ACCEPT_POLL_INTERVAL,
    ):
        """Bind and listen.

        Args:
            host: Address to bind.
            port: Port to bind. Use 0 to let the OS assign a free port.
            backlog: Pending connection queue length.
            poll_interval: Seconds between checks for close() while accepting.

        Raises:
            BindError: If the socket cannot be created or bound.
            ListenError: If the socket cannot start listening.
        """
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise BindError(describe("socket", e)) from e

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
        except OSError as e:
            sock.close()
            raise BindError(describe(f"bind {host}:{port}", e)) from e

        try:
            sock.listen(backlog)
        except OSError as e:
            sock.close()
            raise ListenError(describe("listen", e)) from e

        sock.settimeout(poll_interval)
        self._socket = sock
        self._address = sock.getsockname()[:2]
        self._closed = threading.Event()

    @property
    def address(self) -> tuple[str, int]:
        """The (host, port) the endpoint is bound to."""
        return self._address

    @property
    def port(self) -> int:
        """The port actually bound, even when 0 was requested."""
        return self._address[1]

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def accept(self) -> Connection:
        """Wait for the next peer and return a connection owning its socket.

        Raises:
            AcceptError: If accepting fails or the endpoint is closed.
        """
        while True:
            if self._closed.is_set():
                raise AcceptError("accept: endpoint closed")
            try:
                conn, _ = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._closed.is_set():
                    raise AcceptError("accept: endpoint closed") from e
                raise AcceptError(describe("accept", e)) from e

            conn.settimeout(None)
            return Connection(conn)

    def close(self) -> None:
        """Stop listening. Safe to call more than once and from any thread."""
        if self._closed.is_set():
            return
        self._closed.set()
        try:
            self._socket.close()
        except OSError:
            pass

    def __enter__(self) -> "ListeningEndpoint":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
