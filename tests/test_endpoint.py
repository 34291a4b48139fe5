import errno
import time
import unittest
from unittest import mock

from pingpong.connection import Connection
from pingpong.endpoint import ListeningEndpoint
from pingpong.errors import AcceptError, BindError, ListenError

from support import LOCALHOST, Background


class ListeningEndpointTest(unittest.TestCase):
    def test_reports_assigned_port(self):
        with ListeningEndpoint(LOCALHOST, 0) as endpoint:
            self.assertGreater(endpoint.port, 0)
            self.assertEqual(endpoint.address, (LOCALHOST, endpoint.port))

    def test_accept_returns_connection_to_peer(self):
        with ListeningEndpoint(LOCALHOST, 0) as endpoint:
            with Connection.dial(LOCALHOST, endpoint.port, delay=0) as client:
                with endpoint.accept() as server:
                    self.assertIsInstance(server, Connection)
                    server.send("PING")
                    self.assertEqual(client.receive(), "PING")

    def test_accepted_connection_is_blocking(self):
        with ListeningEndpoint(LOCALHOST, 0, poll_interval=0.05) as endpoint:
            with Connection.dial(LOCALHOST, endpoint.port, delay=0) as client:
                with endpoint.accept() as server:
                    # Would time out after poll_interval if the timeout leaked.
                    reply = Background(server.receive)
                    time.sleep(0.2)
                    self.assertTrue(reply.is_alive())
                    client.send("PONG")
                    self.assertEqual(reply.join().result, "PONG")

    def test_second_endpoint_on_same_port_raises_bind_error(self):
        with ListeningEndpoint(LOCALHOST, 0) as first:
            with self.assertRaises(BindError) as ctx:
                ListeningEndpoint(LOCALHOST, first.port)
        self.assertIsInstance(ctx.exception.__cause__, OSError)

    def test_non_local_address_raises_bind_error(self):
        # TEST-NET-3, never assigned to a local interface
        with self.assertRaises(BindError):
            ListeningEndpoint("203.0.113.1", 0)

    def test_listen_failure_raises_listen_error(self):
        with mock.patch("pingpong.endpoint.socket.socket") as socket_cls:
            sock = socket_cls.return_value
            sock.listen.side_effect = OSError(errno.EOPNOTSUPP, "Operation not supported")
            with self.assertRaises(ListenError) as ctx:
                ListeningEndpoint(LOCALHOST, 0)
        self.assertIn("listen", str(ctx.exception))
        sock.close.assert_called_once_with()

    def test_accept_blocks_until_endpoint_closed(self):
        endpoint = ListeningEndpoint(LOCALHOST, 0, poll_interval=0.05)
        try:
            pending = Background(endpoint.accept)
            time.sleep(0.3)
            self.assertTrue(pending.is_alive())

            endpoint.close()
            pending.join(timeout=5)
            self.assertIsInstance(pending.error, AcceptError)
            self.assertIsNone(pending.result)
        finally:
            endpoint.close()

    def test_accept_after_close_raises(self):
        endpoint = ListeningEndpoint(LOCALHOST, 0)
        endpoint.close()
        self.assertTrue(endpoint.closed)
        with self.assertRaises(AcceptError):
            endpoint.accept()

    def test_close_is_idempotent(self):
        endpoint = ListeningEndpoint(LOCALHOST, 0)
        endpoint.close()
        endpoint.close()
        self.assertTrue(endpoint.closed)

    def test_port_is_free_after_close(self):
        with ListeningEndpoint(LOCALHOST, 0) as first:
            port = first.port
        with ListeningEndpoint(LOCALHOST, port) as second:
            self.assertEqual(second.port, port)


if __name__ == "__main__":
    unittest.main()
