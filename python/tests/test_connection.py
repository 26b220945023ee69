"""Tests for SocketConnection (scripted fake socket, no sentinel required)."""

import socket
import pytest
from unittest.mock import patch
from redsentinel import protocol
from redsentinel.client import SentinelClient
from redsentinel.exceptions import NoConnectionError, ProtocolError
from redsentinel.protocol import SocketConnection
from redsentinel.types import Array, BulkString, Integer, SimpleString


class FakeSocket:
    """Socket double that answers each sendall with the next scripted reply.

    A reply is either bytes (one recv) or a list of chunks (one recv each).
    """

    def __init__(self, *replies, peer_closed=False):
        self.replies = list(replies)
        self.pending = []
        self.peer_closed = peer_closed
        self.sent = []
        self.closed = False
        self.timeouts = []

    def sendall(self, data):
        self.sent.append(data)
        if self.replies:
            reply = self.replies.pop(0)
            self.pending.extend([reply] if isinstance(reply, bytes) else reply)

    def recv(self, n, flags=0):
        if flags & socket.MSG_PEEK:
            if self.pending:
                return self.pending[0][:1]
            if self.peer_closed:
                return b""
            raise BlockingIOError()
        if not self.pending:
            return b""
        chunk = self.pending.pop(0)
        if len(chunk) > n:
            self.pending.insert(0, chunk[n:])
            chunk = chunk[:n]
        return chunk

    def setblocking(self, flag):
        pass

    def settimeout(self, value):
        self.timeouts.append(value)

    def close(self):
        self.closed = True


def _one_byte_chunks(data: bytes):
    return [data[i:i + 1] for i in range(len(data))]


class TestConnect:
    def test_lazy_connect_on_first_send(self):
        fake = FakeSocket(b"+PONG\r\n")
        with patch.object(protocol.socket, "create_connection", return_value=fake) as cc:
            conn = SocketConnection("sentinel.local", 26379)
            assert not conn.connected
            assert conn.send("PING") == SimpleString("PONG")
            cc.assert_called_once_with(("sentinel.local", 26379))
        assert fake.sent == [b"PING\r\n"]

    def test_connect_passes_timeout(self):
        fake = FakeSocket()
        with patch.object(protocol.socket, "create_connection", return_value=fake) as cc:
            SocketConnection("h", 1, timeout=2.5).connect()
            cc.assert_called_once_with(("h", 1), 2.5)

    def test_connect_failure_raises_no_connection(self):
        with patch.object(protocol.socket, "create_connection",
                          side_effect=ConnectionRefusedError("refused")):
            conn = SocketConnection("h", 26379)
            with pytest.raises(NoConnectionError) as info:
                conn.send("PING")
        assert info.value.host == "h"
        assert info.value.port == 26379
        assert not conn.connected

    def test_no_connection_is_a_connection_error(self):
        with patch.object(protocol.socket, "create_connection", side_effect=OSError("nope")):
            with pytest.raises(ConnectionError):
                SocketConnection("h").connect()

    def test_invalid_argument_does_not_connect(self):
        with patch.object(protocol.socket, "create_connection") as cc:
            with pytest.raises(ValueError):
                SocketConnection("h").send("SENTINEL", "slaves", "a\r\nb")
            cc.assert_not_called()


class TestReuseAndHalfClose:
    def test_connection_reused_while_peer_open(self):
        fake = FakeSocket(b"+PONG\r\n", b":1\r\n")
        with patch.object(protocol.socket, "create_connection", return_value=fake) as cc:
            conn = SocketConnection("h")
            conn.send("PING")
            assert conn.send("SENTINEL", "reset", "*") == Integer(1)
            assert cc.call_count == 1
        assert fake.sent == [b"PING\r\n", b"SENTINEL reset *\r\n"]

    def test_reconnects_after_peer_close(self):
        """A half-closed socket is replaced before the next command."""
        first = FakeSocket(b"+PONG\r\n", peer_closed=True)
        second = FakeSocket(b"+PONG\r\n")
        with patch.object(protocol.socket, "create_connection",
                          side_effect=[first, second]) as cc:
            conn = SocketConnection("h")
            conn.send("PING")
            assert conn.send("PING") == SimpleString("PONG")
            assert cc.call_count == 2
        assert first.closed
        assert second.sent == [b"PING\r\n"]

    def test_reconnects_after_unsolicited_data(self):
        """Bytes arriving between commands make the socket unusable."""
        first = FakeSocket(b"+PONG\r\n")
        second = FakeSocket(b":0\r\n")
        with patch.object(protocol.socket, "create_connection",
                          side_effect=[first, second]) as cc:
            conn = SocketConnection("h")
            conn.send("PING")
            first.pending.append(b"+stray\r\n")
            assert conn.send("SENTINEL", "reset", "x") == Integer(0)
            assert cc.call_count == 2
        assert first.closed

    def test_is_alive_restores_timeout(self):
        fake = FakeSocket()
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            conn = SocketConnection("h", timeout=3.0)
            conn.connect()
            assert conn.is_alive()
        assert fake.timeouts == [3.0]

    def test_is_alive_false_when_disconnected(self):
        assert not SocketConnection("h").is_alive()


class TestPartialReads:
    def test_reply_split_into_single_bytes(self):
        data = (
            b"*2\r\n"
            b"*2\r\n$4\r\nname\r\n$8\r\nmymaster\r\n"
            b"*2\r\n$4\r\nname\r\n$6\r\nother1\r\n"
        )
        fake = FakeSocket(_one_byte_chunks(data))
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            reply = SocketConnection("h").send("SENTINEL", "masters")
        assert reply == Array([
            Array([BulkString(b"name"), BulkString(b"mymaster")]),
            Array([BulkString(b"name"), BulkString(b"other1")]),
        ])

    def test_bulk_split_mid_terminator(self):
        fake = FakeSocket([b"$5\r\nhel", b"lo\r", b"\n"])
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            assert SocketConnection("h").send("PING") == BulkString(b"hello")


class TestFailures:
    def test_extra_reply_in_segment_raises_and_closes(self):
        """A second reply to a single request is rejected, not kept for later."""
        fake = FakeSocket(b"+PONG\r\n:9\r\n")
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            conn = SocketConnection("h")
            with pytest.raises(ProtocolError, match="unexpected bytes"):
                conn.send("PING")
        assert fake.closed
        assert not conn.connected

    def test_extra_reply_does_not_leak_into_next_command(self):
        first = FakeSocket(b"+PONG\r\n:9\r\n")
        second = FakeSocket(b":0\r\n")
        with patch.object(protocol.socket, "create_connection", side_effect=[first, second]):
            client = SentinelClient("h")
            assert client.ping() is False
            assert client.reset("nomatch") == 0

    def test_truncated_reply_raises_and_closes(self):
        fake = FakeSocket(b"$10\r\nabc")
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            conn = SocketConnection("h")
            with pytest.raises(ProtocolError, match="closed"):
                conn.send("PING")
        assert fake.closed
        assert not conn.connected

    def test_malformed_reply_closes(self):
        fake = FakeSocket(b"!bogus\r\n")
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            conn = SocketConnection("h")
            with pytest.raises(ProtocolError):
                conn.send("PING")
        assert not conn.connected

    def test_read_timeout_raises_protocol_error(self):
        fake = FakeSocket()

        def stalled(n, flags=0):
            raise socket.timeout("timed out")

        fake.recv = stalled
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            conn = SocketConnection("h", timeout=0.1)
            conn.connect()
            with pytest.raises(ProtocolError, match="Timed out"):
                conn.read_line()

    def test_send_io_error_becomes_protocol_error(self):
        fake = FakeSocket()

        def broken(data):
            raise BrokenPipeError("pipe")

        fake.sendall = broken
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            conn = SocketConnection("h")
            with pytest.raises(ProtocolError, match="I/O error"):
                conn.send("PING")
        assert fake.closed


class TestContextManager:
    def test_context_manager_connects_and_closes(self):
        fake = FakeSocket()
        with patch.object(protocol.socket, "create_connection", return_value=fake):
            with SocketConnection("h") as conn:
                assert conn.connected
        assert fake.closed
        assert not conn.connected
