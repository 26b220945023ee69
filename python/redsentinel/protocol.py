"""Wire protocol for talking to a Redis Sentinel.

Requests are single text lines: the command and its arguments joined by
one space and terminated by CRLF. Replies use the type-tagged reply
grammar (``+`` simple string, ``-`` error, ``:`` integer, ``$`` bulk
string, ``*`` array), decoded here by recursive descent.
"""

import logging
import re
import socket
from typing import Optional

from .exceptions import NoConnectionError, ProtocolError
from .types import Array, BulkString, Error, Integer, Reply, SimpleString


logger = logging.getLogger(__name__)

DEFAULT_PORT = 26379
CRLF = b"\r\n"

# Arrays nested deeper than this are rejected instead of recursing further.
MAX_ARRAY_DEPTH = 32
# Largest bulk payload the service itself will produce (512 MiB).
MAX_BULK_SIZE = 512 * 1024 * 1024

_RECV_SIZE = 4096
_INT_RE = re.compile(rb"-?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


def encode_command(*args) -> bytes:
    """Encode a command as one space-separated line terminated by CRLF.

    Arguments are converted with str(). Raises ValueError for an empty
    command, an empty argument, or an argument containing whitespace,
    since any of those would change how the line is split server-side.
    """
    if not args:
        raise ValueError("Cannot encode an empty command")
    parts = []
    for arg in args:
        text = str(arg)
        if not text:
            raise ValueError("Command arguments must not be empty")
        if any(ch.isspace() for ch in text):
            raise ValueError(f"Command argument contains whitespace: {text!r}")
        parts.append(text)
    return " ".join(parts).encode("utf-8") + CRLF


def _parse_int(payload: bytes, what: str) -> int:
    if _INT_RE.fullmatch(payload) is None:
        raise ProtocolError(f"Invalid {what}: {payload!r}")
    value = int(payload)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ProtocolError(f"{what.capitalize()} outside 64-bit range: {payload!r}")
    return value


def _parse_text(payload: bytes, what: str) -> str:
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        raise ProtocolError(f"{what.capitalize()} is not valid UTF-8: {payload!r}") from None


def decode_reply(stream, _depth: int = 0) -> Reply:
    """Decode exactly one reply from ``stream``.

    ``stream`` must provide ``read_line()`` returning one line without its
    CRLF and ``read_exact(n)`` returning exactly n bytes; both raise
    ProtocolError if the data ends early. Array elements are decoded by
    recursing into this function, so nesting depth is only bounded by
    MAX_ARRAY_DEPTH.
    """
    line = stream.read_line()
    if not line:
        raise ProtocolError("Empty reply line (missing type prefix)")

    prefix = line[:1]
    payload = line[1:]

    if prefix == b"+":
        return SimpleString(_parse_text(payload, "simple string"))
    if prefix == b"-":
        return Error(_parse_text(payload, "error reply"))
    if prefix == b":":
        return Integer(_parse_int(payload, "integer reply"))
    if prefix == b"$":
        length = _parse_int(payload, "bulk length")
        if length == -1:
            return BulkString(None)
        if length < -1 or length > MAX_BULK_SIZE:
            raise ProtocolError(f"Bulk length out of range: {length}")
        data = stream.read_exact(length)
        if stream.read_exact(2) != CRLF:
            raise ProtocolError(f"Bulk payload of {length} bytes not terminated by CRLF")
        # Multi-line payloads (e.g. INFO-style text) come back with bare newlines.
        return BulkString(data.replace(CRLF, b"\n"))
    if prefix == b"*":
        count = _parse_int(payload, "array length")
        if count == -1:
            return Array(None)
        if count < -1:
            raise ProtocolError(f"Array length out of range: {count}")
        if _depth >= MAX_ARRAY_DEPTH:
            raise ProtocolError(f"Arrays nested deeper than {MAX_ARRAY_DEPTH} levels")
        return Array([decode_reply(stream, _depth + 1) for _ in range(count)])

    raise ProtocolError(f"Unknown reply type prefix: {prefix!r}")


class BytesStream:
    """In-memory stream over a complete reply buffer."""

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read_line(self) -> bytes:
        end = self._data.find(CRLF, self._pos)
        if end < 0:
            raise ProtocolError("Stream ended before line terminator")
        line = self._data[self._pos:end]
        self._pos = end + 2
        return line

    def read_exact(self, n: int) -> bytes:
        if self.remaining < n:
            raise ProtocolError(f"Stream truncated: expected {n} bytes, got {self.remaining}")
        data = self._data[self._pos:self._pos + n]
        self._pos += n
        return data


def decode_bytes(data: bytes) -> Reply:
    """Decode a buffer holding exactly one complete reply.

    Raises ProtocolError if the buffer is truncated or has bytes left over.
    """
    stream = BytesStream(data)
    reply = decode_reply(stream)
    if stream.remaining:
        raise ProtocolError(f"{stream.remaining} unexpected bytes after reply")
    return reply


class SocketConnection:
    """Manages one TCP connection to a Sentinel.

    The socket is opened on first use and reused until the peer closes
    its end, which is checked before every command. Reads go through an
    internal buffer so replies split across arbitrarily small segments
    are reassembled before decoding.
    """

    def __init__(self, host: str, port: int = DEFAULT_PORT, timeout: Optional[float] = None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None
        self._buf = bytearray()

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self):
        """Open the socket. Raises NoConnectionError on failure."""
        if self._sock is not None:
            return
        address = (self.host, self.port)
        try:
            if self.timeout is None:
                self._sock = socket.create_connection(address)
            else:
                self._sock = socket.create_connection(address, self.timeout)
        except OSError as exc:
            logger.debug("Connect to %s:%s failed: %s", self.host, self.port, exc)
            raise NoConnectionError(self.host, self.port, str(exc)) from exc
        self._buf.clear()
        logger.debug("Connected to sentinel at %s:%s", self.host, self.port)

    def is_alive(self) -> bool:
        """Return True if the socket is open, idle, and safe to reuse.

        Peeks without blocking: no data pending means the connection is
        idle but open. An empty read means the peer closed its end, and
        pending bytes were sent without a request, so the stream can no
        longer be matched to replies.
        """
        if self._sock is None or self._buf:
            return False
        try:
            self._sock.setblocking(False)
            data = self._sock.recv(1, socket.MSG_PEEK)
        except BlockingIOError:
            return True
        except OSError:
            return False
        finally:
            try:
                self._sock.settimeout(self.timeout)
            except OSError:
                pass
        if data:
            logger.debug("Unsolicited data from sentinel at %s:%s", self.host, self.port)
        return False

    def ensure_connected(self):
        """Connect, replacing the socket first if it cannot be reused."""
        if self._sock is not None and not self.is_alive():
            logger.debug("Dropping connection to sentinel at %s:%s", self.host, self.port)
            self.close()
        self.connect()

    def send(self, *args) -> Reply:
        """Send one command and decode exactly one reply.

        Any failure after the command is written leaves the read cursor in
        an unknown position, so the socket is closed before re-raising.
        Bytes received beyond the end of the reply are a protocol error.
        """
        frame = encode_command(*args)
        self.ensure_connected()
        logger.debug("Sending %s", " ".join(str(a) for a in args))
        try:
            self._sock.sendall(frame)
            reply = decode_reply(self)
            if self._buf:
                raise ProtocolError(f"{len(self._buf)} unexpected bytes after reply")
            return reply
        except ProtocolError:
            self.close()
            raise
        except OSError as exc:
            self.close()
            raise ProtocolError(f"I/O error talking to sentinel: {exc}") from exc

    def _fill(self):
        try:
            chunk = self._sock.recv(_RECV_SIZE)
        except socket.timeout:
            raise ProtocolError("Timed out waiting for reply") from None
        if not chunk:
            raise ProtocolError("Connection closed before reply was complete")
        self._buf.extend(chunk)

    def read_line(self) -> bytes:
        """Read one line, without its CRLF."""
        while True:
            end = self._buf.find(CRLF)
            if end >= 0:
                line = bytes(self._buf[:end])
                del self._buf[:end + 2]
                return line
            self._fill()

    def read_exact(self, n: int) -> bytes:
        """Read exactly n bytes."""
        while len(self._buf) < n:
            self._fill()
        data = bytes(self._buf[:n])
        del self._buf[:n]
        return data

    def close(self):
        """Close the socket connection."""
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
            logger.debug("Disconnected from sentinel at %s:%s", self.host, self.port)
        self._buf.clear()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()
