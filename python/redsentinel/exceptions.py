"""Exception hierarchy for the Sentinel client.

Each error also derives from the builtin a caller would naturally catch:
socket failures are ConnectionErrors, malformed replies are ValueErrors,
and errors reported by the service are RuntimeErrors.
"""


class SentinelError(Exception):
    """Base exception for all redsentinel errors."""


class NoConnectionError(SentinelError, ConnectionError):
    """Raised when the socket to the Sentinel cannot be opened.

    Attributes:
        host: str - Sentinel host that was tried
        port: int - Sentinel port that was tried
    """

    def __init__(self, host: str, port: int, reason: str = None):
        self.host = host
        self.port = port
        msg = f"Cannot connect to Sentinel at {host}:{port}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class ProtocolError(SentinelError, ValueError):
    """Raised when the reply stream is malformed or ends mid-reply."""


class ResponseError(SentinelError, RuntimeError):
    """Raised when the Sentinel answers with an error line.

    The message is the service's error text, unmodified.
    """
