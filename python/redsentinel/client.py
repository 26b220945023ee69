"""Sentinel client -- typed access to the Sentinel administrative commands."""

import logging
from typing import Dict, List, Optional

from .exceptions import ProtocolError, ResponseError, SentinelError
from .protocol import DEFAULT_PORT, SocketConnection
from .types import Array, BulkString, Error, Integer, Reply, SimpleString


logger = logging.getLogger(__name__)


def _check_arg(value, what: str) -> str:
    """Validate a single command argument (master name, address, pattern)."""
    if not isinstance(value, str):
        raise TypeError(f"{what} must be a string, got {type(value).__name__}")
    if not value:
        raise ValueError(f"{what} must not be empty")
    if any(ch.isspace() for ch in value):
        raise ValueError(f"{what} must not contain whitespace: {value!r}")
    return value


def _scalar(reply: Reply) -> str:
    """Render a non-array reply as text."""
    if isinstance(reply, BulkString):
        if reply.value is None:
            raise ProtocolError("Unexpected null bulk string in reply")
        return reply.text()
    if isinstance(reply, (SimpleString, Integer)):
        return str(reply.value)
    raise ProtocolError(f"Expected a scalar reply, got {type(reply).__name__}")


def _expect_array(reply: Reply) -> Array:
    if not isinstance(reply, Array):
        raise ProtocolError(f"Expected an array reply, got {type(reply).__name__}")
    return reply


def _to_record(reply: Reply) -> Dict[str, str]:
    """Convert an array of alternating key/value entries into a dict."""
    items = _expect_array(reply).value or []
    if len(items) % 2:
        raise ProtocolError(f"Field list has an odd number of entries ({len(items)})")
    return {_scalar(items[i]): _scalar(items[i + 1]) for i in range(0, len(items), 2)}


class SentinelClient:
    """Client for a Redis Sentinel.

    Holds one TCP connection, opened on the first command and reused
    while the Sentinel keeps it open. Every method sends one command and
    reads one reply. Failures are not retried: a refused connection
    raises NoConnectionError (except ``ping``, which returns False), an
    error line from the Sentinel raises ResponseError, and a malformed
    reply raises ProtocolError.

    Not thread-safe; guard an instance with a lock if it is shared.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = DEFAULT_PORT,
                 timeout: Optional[float] = None):
        self._conn = SocketConnection(host, port, timeout)

    @classmethod
    def from_config(cls, config) -> 'SentinelClient':
        """Build a client from a SentinelConfig."""
        return cls(config.host, config.port, config.timeout)

    @property
    def host(self) -> str:
        return self._conn.host

    @property
    def port(self) -> int:
        return self._conn.port

    def _send(self, *args) -> Reply:
        """Send a command and return the decoded reply, raising on error lines."""
        reply = self._conn.send(*args)
        if isinstance(reply, Error):
            raise ResponseError(reply.value)
        return reply

    def ping(self) -> bool:
        """Return True if the Sentinel answers PING with PONG.

        Never raises for connection or protocol failures.
        """
        try:
            reply = self._conn.send("PING")
        except SentinelError as exc:
            logger.warning("PING to %s:%s failed: %s", self.host, self.port, exc)
            return False
        return reply == SimpleString("PONG")

    def masters(self) -> List[Dict[str, str]]:
        """List the monitored masters, one dict of fields per master.

        Field names are whatever the Sentinel reports (name, ip, port,
        flags, ...), passed through unchanged.
        """
        reply = _expect_array(self._send("SENTINEL", "masters"))
        return [_to_record(item) for item in reply.value or []]

    def slaves(self, master_name: str) -> List[Dict[str, str]]:
        """List the replicas of a master, one dict of fields per replica."""
        _check_arg(master_name, "master_name")
        reply = _expect_array(self._send("SENTINEL", "slaves", master_name))
        return [_to_record(item) for item in reply.value or []]

    replicas = slaves

    def get_master_addr_by_name(self, master_name: str) -> List[str]:
        """Resolve a master's address.

        Returns ``[ip, port]``, or an empty list if the Sentinel does not
        know the master.
        """
        _check_arg(master_name, "master_name")
        reply = _expect_array(self._send("SENTINEL", "get-master-addr-by-name", master_name))
        if reply.value is None:
            return []
        if len(reply.value) != 2:
            raise ProtocolError(f"Expected [ip, port], got {len(reply.value)} entries")
        return [_scalar(item) for item in reply.value]

    def is_master_down_by_addr(self, ip: str, port: int) -> List[str]:
        """Ask whether the master at ip:port is considered down.

        Returns ``[down_state, leader]`` as strings, e.g. ``["0", "*"]``.
        Extra trailing entries (leader epoch) are ignored.
        """
        _check_arg(ip, "ip")
        if isinstance(port, bool) or not isinstance(port, int):
            raise TypeError(f"port must be an int, got {type(port).__name__}")
        if port < 0:
            raise ValueError(f"port must be non-negative, got {port}")
        reply = _expect_array(self._send("SENTINEL", "is-master-down-by-addr", ip, port))
        items = reply.value or []
        if len(items) < 2:
            raise ProtocolError(f"Expected [down_state, leader], got {len(items)} entries")
        return [_scalar(items[0]), _scalar(items[1])]

    def reset(self, pattern: str) -> int:
        """Reset every master whose name matches a glob pattern.

        Returns the number of masters that matched.
        """
        _check_arg(pattern, "pattern")
        reply = self._send("SENTINEL", "reset", pattern)
        if not isinstance(reply, Integer):
            raise ProtocolError(f"Expected an integer reply, got {type(reply).__name__}")
        return reply.value

    def connect(self) -> 'SentinelClient':
        """Explicitly connect (also connects on first use)."""
        self._conn.connect()
        return self

    def close(self):
        """Close the socket connection."""
        self._conn.close()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    def __del__(self):
        conn = getattr(self, "_conn", None)
        if conn is not None:
            conn.close()
