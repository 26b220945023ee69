"""redsentinel -- a small client for the Redis Sentinel administrative commands."""

from .client import SentinelClient
from .config import SentinelConfig, load_config
from .exceptions import NoConnectionError, ProtocolError, ResponseError, SentinelError
from .protocol import DEFAULT_PORT, decode_bytes, decode_reply, encode_command
from .types import Array, BulkString, Error, Integer, Reply, SimpleString

# Module-level convenience instance (connects lazily)
_default_client: SentinelClient = None


def _get_client() -> SentinelClient:
    global _default_client
    if _default_client is None:
        _default_client = SentinelClient.from_config(load_config())
    return _default_client


def ping() -> bool:
    """PING the default Sentinel."""
    return _get_client().ping()


def masters():
    """List masters known to the default Sentinel."""
    return _get_client().masters()


def slaves(master_name: str):
    """List replicas of a master via the default Sentinel."""
    return _get_client().slaves(master_name)


def get_master_addr_by_name(master_name: str):
    """Resolve a master's [ip, port] via the default Sentinel."""
    return _get_client().get_master_addr_by_name(master_name)


def is_master_down_by_addr(ip: str, port: int):
    """Ask the default Sentinel whether the master at ip:port is down."""
    return _get_client().is_master_down_by_addr(ip, port)


def reset(pattern: str) -> int:
    """Reset masters matching a glob pattern on the default Sentinel."""
    return _get_client().reset(pattern)


def connect(host: str = "127.0.0.1", port: int = DEFAULT_PORT, timeout: float = None) -> SentinelClient:
    """Create, connect, and install the default client."""
    global _default_client
    if _default_client is not None:
        _default_client.close()
    _default_client = SentinelClient(host, port, timeout)
    _default_client.connect()
    return _default_client


__all__ = [
    'SentinelClient', 'SentinelConfig', 'load_config',
    'SentinelError', 'NoConnectionError', 'ProtocolError', 'ResponseError',
    'Reply', 'SimpleString', 'Error', 'Integer', 'BulkString', 'Array',
    'encode_command', 'decode_reply', 'decode_bytes', 'DEFAULT_PORT',
    'ping', 'masters', 'slaves', 'get_master_addr_by_name',
    'is_master_down_by_addr', 'reset', 'connect',
]
