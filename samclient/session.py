"""SAM sessions: stream, datagram and raw sessions over a SAM bridge."""

from __future__ import annotations

import random
import string
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .connection import I2PSocket
from .message import (
    DEFAULT_ADDRESS,
    DEFAULT_CLIENT_UDP,
    DEFAULT_I2P_OPTIONS,
    DEFAULT_PORT_TCP,
    DEFAULT_PORT_UDP,
    GENERATE_MY_DESTINATION,
    SIGNATURE_TYPE,
    Answer,
    SAMError,
    SessionStyle,
    Status,
    check_answer,
    get_value,
    session_create,
    session_create_udp,
    stream_accept,
    stream_connect,
    stream_forward,
)
from . import message

_MIN_SESSION_ID_LENGTH = 5
_MAX_SESSION_ID_LENGTH = 8

# Statuses after which a session is considered broken.
_LOOKUP_SICK = frozenset({Status.EMPTY_ANSWER, Status.CLOSED_SOCKET})
_STREAM_SICK = frozenset(
    {Status.EMPTY_ANSWER, Status.CLOSED_SOCKET, Status.INVALID_ID, Status.I2P_ERROR}
)


@dataclass(frozen=True)
class FullDestination:
    """A destination's public and private keys."""

    pub: str = ""
    priv: str = ""
    is_generated: bool = False


@dataclass
class _ForwardedStream:
    socket: I2PSocket
    host: str
    port: int
    silent: bool


def generate_session_id() -> str:
    """Return a random session ID of 5 to 8 upper-case letters."""
    length = random.randint(_MIN_SESSION_ID_LENGTH, _MAX_SESSION_ID_LENGTH)
    return "".join(random.choice(string.ascii_uppercase) for _ in range(length))


def _raw_request(sock: I2PSocket, request: str) -> Answer[str]:
    if not sock.is_ok:
        return Answer(Status.CLOSED_SOCKET)
    try:
        sock.write(request)
        answer = sock.read()
    except SAMError:
        answer = ""
    return Answer(check_answer(answer), answer)


def _request(sock: I2PSocket, request: str, key_on_success: str) -> Answer[str]:
    answer = _raw_request(sock, request)
    if answer.ok:
        return Answer(answer.status, get_value(answer.value or "", key_on_success))
    return answer


class SAMSession(ABC):
    """Common state of a session held open on a SAM bridge control connection."""

    def __init__(
        self,
        nickname: str,
        sam_host: str = DEFAULT_ADDRESS,
        sam_port: int = DEFAULT_PORT_TCP,
        i2p_options: str = DEFAULT_I2P_OPTIONS,
        signature_type: str = SIGNATURE_TYPE,
    ):
        self._socket = I2PSocket(sam_host, sam_port)
        self.nickname = nickname
        self.session_id = generate_session_id()
        self.i2p_options = i2p_options
        self.signature_type = signature_type
        self.my_destination = FullDestination()
        self._sick = False

    @property
    def is_sick(self) -> bool:
        """Whether the session has hit an error that left it unusable."""
        return self._sick

    @property
    def sam_host(self) -> str:
        return self._socket.host

    @property
    def sam_port(self) -> int:
        return self._socket.port

    @property
    def sam_address(self) -> Tuple[str, int]:
        return self._socket.address

    @property
    def sam_version(self) -> str:
        return self._socket.version

    @property
    def sam_min_ver(self) -> str:
        return self._socket.min_ver

    @property
    def sam_max_ver(self) -> str:
        return self._socket.max_ver

    def _fall_sick(self) -> None:
        self._sick = True

    def _establish(self, destination: str) -> None:
        try:
            self.my_destination = self.create_session(destination)
        except SAMError:
            self.my_destination = FullDestination()

    def _create(self, request: str, destination: str) -> FullDestination:
        answer = _request(self._socket, request, "DESTINATION")
        if not answer.ok:
            self._fall_sick()
            raise SAMError(
                f"Session creation failed: {answer.status.value}", answer.status
            )
        value = answer.value or ""
        return FullDestination(value, value, destination == GENERATE_MY_DESTINATION)

    def naming_lookup(self, name: str) -> str:
        """Resolve a name to its public destination."""
        with self._socket.clone() as sock:
            answer = _request(sock, message.naming_lookup(name), "VALUE")
        if answer.ok:
            return answer.value or ""
        if answer.status in _LOOKUP_SICK:
            self._fall_sick()
        raise SAMError(f"Lookup of {name!r} failed: {answer.status.value}", answer.status)

    def dest_generate(self) -> FullDestination:
        """Ask the bridge to generate a new destination key pair."""
        with self._socket.clone() as sock:
            status, dest = self._dest_generate(sock)
        if status is Status.OK:
            return dest
        if status in _LOOKUP_SICK:
            self._fall_sick()
        raise SAMError(f"Destination generation failed: {status.value}", status)

    @staticmethod
    def _dest_generate(sock: I2PSocket) -> Tuple[Status, FullDestination]:
        # A DEST REPLY carries no RESULT field, so it is parsed by hand.
        if not sock.is_ok:
            return Status.CLOSED_SOCKET, FullDestination()
        try:
            sock.write(message.dest_generate())
            answer = sock.read()
        except SAMError:
            answer = ""
        pub = get_value(answer, "PUB")
        priv = get_value(answer, "PRIV")
        if pub and priv:
            return Status.OK, FullDestination(pub, priv, True)
        return Status.EMPTY_ANSWER, FullDestination()

    @abstractmethod
    def create_session(
        self,
        destination: str,
        sig_type: Optional[str] = None,
        i2p_options: Optional[str] = None,
    ) -> FullDestination:
        """Create the session on the bridge and return its destination."""

    def close(self) -> None:
        """Close the control connection, which ends the session on the bridge."""
        self._socket.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(nickname={self.nickname!r}, "
            f"id={self.session_id!r}, sick={self._sick})"
        )


class StreamSession(SAMSession):
    """A STREAM session: connect to, accept from and forward I2P streams."""

    def __init__(
        self,
        nickname: str,
        sam_host: str = DEFAULT_ADDRESS,
        sam_port: int = DEFAULT_PORT_TCP,
        destination: str = GENERATE_MY_DESTINATION,
        i2p_options: str = DEFAULT_I2P_OPTIONS,
        signature_type: str = SIGNATURE_TYPE,
    ):
        super().__init__(nickname, sam_host, sam_port, i2p_options, signature_type)
        self._forwarded: List[_ForwardedStream] = []
        self._establish(destination)

    @property
    def forwards(self) -> List[Tuple[str, int, bool]]:
        """The active forwards as ``(host, port, silent)`` triples."""
        return [(f.host, f.port, f.silent) for f in self._forwarded]

    def create_session(
        self,
        destination: str,
        sig_type: Optional[str] = None,
        i2p_options: Optional[str] = None,
    ) -> FullDestination:
        request = session_create(
            SessionStyle.STREAM,
            self.session_id,
            self.nickname,
            destination,
            self.i2p_options if i2p_options is None else i2p_options,
            self.signature_type if sig_type is None else sig_type,
        )
        return self._create(request, destination)

    def _stream_request(self, sock: I2PSocket, request: str) -> Status:
        return _raw_request(sock, request).status

    def _fail(self, sock: I2PSocket, status: Status, what: str) -> SAMError:
        if status in _STREAM_SICK:
            self._fall_sick()
        sock.close()
        return SAMError(f"{what} failed: {status.value}", status)

    def accept(self, silent: bool = False) -> I2PSocket:
        """Wait for an inbound stream and return the connection carrying it."""
        sock = self._socket.clone()
        status = self._stream_request(sock, stream_accept(self.session_id, silent))
        if status is Status.OK:
            return sock
        raise self._fail(sock, status, "Accept")

    def connect(self, destination: str, silent: bool = False) -> I2PSocket:
        """Open a stream to a destination and return the connection carrying it.

        With ``silent`` the bridge sends no status, so the connection is
        returned without checking the reply.
        """
        sock = self._socket.clone()
        status = self._stream_request(
            sock, stream_connect(self.session_id, destination, silent)
        )
        if silent or status is Status.OK:
            return sock
        raise self._fail(sock, status, "Connect")

    def forward(self, host: str, port: int, silent: bool = False) -> None:
        """Have the bridge forward inbound streams to ``host:port``."""
        sock = self._socket.clone()
        status = self._stream_request(
            sock, stream_forward(self.session_id, host, port, silent)
        )
        if status is not Status.OK:
            raise self._fail(sock, status, "Forward")
        self._forwarded.append(_ForwardedStream(sock, host, int(port), silent))

    def stop_forwarding(self, host: str, port: int) -> None:
        """Stop every forward to ``host:port``."""
        kept = []
        for stream in self._forwarded:
            if stream.port == port and stream.host == host:
                stream.socket.close()
            else:
                kept.append(stream)
        self._forwarded = kept

    def stop_forwarding_all(self) -> None:
        """Stop all forwards and close the control connection."""
        for stream in self._forwarded:
            stream.socket.close()
        self._forwarded.clear()
        self._socket.close()

    def close(self) -> None:
        self.stop_forwarding_all()


class _UDPSession(SAMSession):
    """A session whose datagrams go to a client UDP port.

    Only the TCP control side is handled here; the UDP exchange is left to
    the application.
    """

    _style: SessionStyle

    def __init__(
        self,
        nickname: str,
        sam_host: str = DEFAULT_ADDRESS,
        sam_port_tcp: int = DEFAULT_PORT_TCP,
        sam_port_udp: int = DEFAULT_PORT_UDP,
        listen_address: str = DEFAULT_ADDRESS,
        client_port_udp: int = DEFAULT_CLIENT_UDP,
        destination: str = GENERATE_MY_DESTINATION,
        i2p_options: str = DEFAULT_I2P_OPTIONS,
        signature_type: str = SIGNATURE_TYPE,
    ):
        super().__init__(nickname, sam_host, sam_port_tcp, i2p_options, signature_type)
        self.listen_address = listen_address
        self.listen_port_udp = int(client_port_udp)
        self.sam_port_udp = int(sam_port_udp)
        self._establish(destination)

    def create_session(
        self,
        destination: str,
        sig_type: Optional[str] = None,
        i2p_options: Optional[str] = None,
    ) -> FullDestination:
        request = session_create_udp(
            self._style,
            self.session_id,
            self.nickname,
            self.listen_port_udp,
            self.listen_address,
            destination,
            self.i2p_options if i2p_options is None else i2p_options,
            self.signature_type if sig_type is None else sig_type,
        )
        return self._create(request, destination)


class DatagramSession(_UDPSession):
    """A DATAGRAM session (repliable, signed datagrams)."""

    _style = SessionStyle.DATAGRAM

    def __init__(
        self,
        nickname: str,
        sam_host: str = DEFAULT_ADDRESS,
        sam_port_tcp: int = DEFAULT_PORT_TCP,
        sam_port_udp: int = DEFAULT_PORT_UDP,
        listen_address: str = DEFAULT_ADDRESS,
        client_port_udp: int = DEFAULT_CLIENT_UDP,
        destination: str = GENERATE_MY_DESTINATION,
        i2p_options: str = DEFAULT_I2P_OPTIONS,
        signature_type: str = SIGNATURE_TYPE,
    ):
        super().__init__(
            nickname, sam_host, sam_port_tcp, sam_port_udp, listen_address,
            client_port_udp, destination, i2p_options, signature_type,
        )

    def create_session(
        self,
        destination: str,
        sig_type: Optional[str] = None,
        i2p_options: Optional[str] = None,
    ) -> FullDestination:
        return super().create_session(destination, sig_type, i2p_options)


class RawSession(_UDPSession):
    """A RAW session (anonymous, unsigned datagrams)."""

    _style = SessionStyle.RAW

    def __init__(
        self,
        nickname: str,
        sam_host: str = DEFAULT_ADDRESS,
        sam_port_tcp: int = DEFAULT_PORT_TCP,
        sam_port_udp: int = DEFAULT_PORT_UDP,
        listen_address: str = DEFAULT_ADDRESS,
        client_port_udp: int = DEFAULT_CLIENT_UDP,
        destination: str = GENERATE_MY_DESTINATION,
        i2p_options: str = DEFAULT_I2P_OPTIONS,
        signature_type: str = SIGNATURE_TYPE,
    ):
        super().__init__(
            nickname, sam_host, sam_port_tcp, sam_port_udp, listen_address,
            client_port_udp, destination, i2p_options, signature_type,
        )

    def create_session(
        self,
        destination: str,
        sig_type: Optional[str] = None,
        i2p_options: Optional[str] = None,
    ) -> FullDestination:
        return super().create_session(destination, sig_type, i2p_options)