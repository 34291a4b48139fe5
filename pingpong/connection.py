"""Connection handle that owns one connected TCP socket."""

import socket
import time
from typing import Optional

from pingpong.config import DIAL_DELAY, MAX_MESSAGE, RECV_SIZE, TERMINATOR
from pingpong.errors import ConnectError, TransportError, describe


class Connection:
    """Exclusive owner of one stream socket.

    Messages are UTF-8 text followed by a single NUL byte. The socket is
    closed exactly once: by close(), by leaving a ``with`` block, or by
    handing ownership to another handle with detach().

    A handle is not thread-safe. Only its current owner may call send() or
    receive().
    """

    def __init__(self, sock: socket.socket):
        self._socket: Optional[socket.socket] = sock
        self._buffer = b""

    @classmethod
    def dial(cls, host: str, port: int, delay: float = DIAL_DELAY) -> "Connection":
        """Connect to a listening endpoint.

        Sleeps for ``delay`` seconds first so the listener can come up, then
        makes exactly one connection attempt.

        Raises:
            ConnectError: If the socket cannot be created or the attempt fails.
        """
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            raise ConnectError(describe("socket", e)) from e

        # TODO: replace the fixed sleep with retry-and-backoff until the
        # listener answers; a single attempt can still race a slow listener.
        time.sleep(delay)

        try:
            sock.connect((host, port))
        except OSError as e:
            sock.close()
            raise ConnectError(describe(f"connect to {host}:{port}", e)) from e
        return cls(sock)

    @property
    def closed(self) -> bool:
        """True once the handle no longer owns a socket."""
        return self._socket is None

    def fileno(self) -> int:
        """Return the owned socket's descriptor, or -1 when unowned."""
        if self._socket is None:
            return -1
        return self._socket.fileno()

    def _require(self, operation: str) -> socket.socket:
        if self._socket is None:
            raise TransportError(f"{operation}: connection is closed")
        return self._socket

    def send(self, text: str) -> None:
        """Send one message.

        Raises:
            ValueError: If ``text`` contains the terminator or exceeds MAX_MESSAGE bytes.
            TransportError: If the handle is closed or the write fails.
        """
        data = text.encode("utf-8")
        if TERMINATOR in data:
            raise ValueError(f"message must not contain NUL: {text!r}")
        if len(data) > MAX_MESSAGE:
            raise ValueError(f"message longer than {MAX_MESSAGE} bytes")
        sock = self._require("send")
        try:
            sock.sendall(data + TERMINATOR)
        except OSError as e:
            raise TransportError(describe("send", e)) from e

    def receive(self) -> str:
        """Block until one full message arrives and return it.

        Bytes past the first terminator stay buffered for the next call.

        Raises:
            TransportError: If the peer closed the connection, the read fails,
                a message grows past MAX_MESSAGE bytes, or the handle is closed.
        """
        sock = self._require("recv")
        while TERMINATOR not in self._buffer:
            try:
                data = sock.recv(RECV_SIZE)
            except OSError as e:
                raise TransportError(describe("recv", e)) from e
            if not data:
                raise TransportError("recv: connection closed by peer")
            self._buffer += data
            if TERMINATOR not in self._buffer and len(self._buffer) > MAX_MESSAGE:
                raise TransportError("recv: message too long")

        message, self._buffer = self._buffer.split(TERMINATOR, 1)
        return message.decode("utf-8", errors="replace")

    def detach(self) -> "Connection":
        """Move the socket into a new handle and leave this one closed."""
        sock = self._require("detach")
        moved = Connection(sock)
        moved._buffer = self._buffer
        self._socket = None
        self._buffer = b""
        return moved

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        sock, self._socket = self._socket, None
        self._buffer = b""
        if sock is not None:
            try:
                sock.close()
            except OSError:
                pass

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<Connection fd={self.fileno()}>"
