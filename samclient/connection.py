"""A TCP connection to a SAM bridge that performs the HELLO handshake."""

from __future__ import annotations

import socket
from typing import Optional, Tuple, Union

from .message import (
    BUFSIZE,
    DEFAULT_ADDRESS,
    DEFAULT_PORT_TCP,
    SAMError,
    Status,
    check_answer,
    get_value,
    hello,
)

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class I2PSocket:
    """A connection to a SAM bridge.

    Creating one opens the TCP connection and sends the HELLO handshake.
    If the bridge cannot be reached the object is still created, but
    ``is_ok`` is false. If the handshake is refused the connection stays
    open and ``version`` remains empty.
    """

    min_ver = "3.0"
    max_ver = "3.1"

    def __init__(self, host: str = DEFAULT_ADDRESS, port: int = DEFAULT_PORT_TCP):
        self.host = host
        self.port = int(port)
        self.version = ""
        self._sock: Optional[socket.socket] = None
        self._bootstrap()

    @property
    def address(self) -> Tuple[str, int]:
        """The bridge address as a ``(host, port)`` pair."""
        return (self.host, self.port)

    @property
    def is_ok(self) -> bool:
        """Whether the connection is open."""
        return self._sock is not None

    def clone(self) -> "I2PSocket":
        """Open a new connection to the same bridge, with its own handshake."""
        return type(self)(self.host, self.port)

    def _bootstrap(self) -> None:
        self._open()
        if self.is_ok:
            self._handshake()

    def _open(self) -> None:
        try:
            self._sock = socket.create_connection(self.address)
        except OSError:
            self._sock = None

    def _handshake(self) -> None:
        try:
            self.write(hello(self.min_ver, self.max_ver))
            answer = self.read()
        except SAMError:
            return
        if check_answer(answer) is Status.OK:
            self.version = get_value(answer, "VERSION")

    def write(self, msg: Union[str, bytes]) -> None:
        """Send a message; the connection is closed if sending fails."""
        if self._sock is None:
            raise SAMError(
                "Failed to send data because socket is closed", Status.CLOSED_SOCKET
            )
        data = msg if isinstance(msg, (bytes, bytearray)) else msg.encode(_ENCODING, _ERRORS)
        try:
            self._sock.sendall(data)
        except OSError as exc:
            self.close()
            raise SAMError("Failed to send data", Status.CLOSED_SOCKET) from exc

    def read(self) -> str:
        """Receive one chunk of at most ``BUFSIZE`` bytes.

        Returns an empty string, and closes the connection, once the peer
        has closed it. The text stops at the first NUL byte.
        """
        if self._sock is None:
            raise SAMError(
                "Failed to read data because socket is closed", Status.CLOSED_SOCKET
            )
        try:
            data = self._sock.recv(BUFSIZE)
        except OSError as exc:
            self.close()
            raise SAMError("Failed to receive data", Status.CLOSED_SOCKET) from exc
        if not data:
            self.close()
            return ""
        return data.split(b"\x00", 1)[0].decode(_ENCODING, _ERRORS)

    def release(self) -> Optional[socket.socket]:
        """Hand over the underlying socket; this object no longer owns it."""
        sock, self._sock = self._sock, None
        return sock

    def close(self) -> None:
        """Close the connection if it is open."""
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    def __enter__(self) -> "I2PSocket":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_ok else "closed"
        return f"I2PSocket({self.host!r}, {self.port}, {state}, version={self.version!r})"