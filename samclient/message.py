"""SAM v3 protocol messages: request builders and reply parsing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

BUFSIZE = 8192
DEFAULT_ADDRESS = "127.0.0.1"
DEFAULT_PORT_TCP = 7656
DEFAULT_PORT_UDP = 7655
DEFAULT_CLIENT_TCP = 7666
DEFAULT_CLIENT_UDP = 7667
GENERATE_MY_DESTINATION = "TRANSIENT"
MY_NAME = "ME"
SIGNATURE_TYPE = "EdDSA_SHA512_Ed25519"

NAME_INBOUND_QUANTITY = "inbound.quantity"
DEFAULT_INBOUND_QUANTITY = 3
NAME_INBOUND_LENGTH = "inbound.length"
DEFAULT_INBOUND_LENGTH = 3
NAME_INBOUND_LENGTHVARIANCE = "inbound.lengthVariance"
DEFAULT_INBOUND_LENGTHVARIANCE = 0
NAME_INBOUND_BACKUPQUANTITY = "inbound.backupQuantity"
DEFAULT_INBOUND_BACKUPQUANTITY = 1
NAME_INBOUND_ALLOWZEROHOP = "inbound.allowZeroHop"
DEFAULT_INBOUND_ALLOWZEROHOP = True
NAME_INBOUND_IPRESTRICTION = "inbound.IPRestriction"
DEFAULT_INBOUND_IPRESTRICTION = 2
NAME_OUTBOUND_QUANTITY = "outbound.quantity"
DEFAULT_OUTBOUND_QUANTITY = 3
NAME_OUTBOUND_LENGTH = "outbound.length"
DEFAULT_OUTBOUND_LENGTH = 3
NAME_OUTBOUND_LENGTHVARIANCE = "outbound.lengthVariance"
DEFAULT_OUTBOUND_LENGTHVARIANCE = 0
NAME_OUTBOUND_BACKUPQUANTITY = "outbound.backupQuantity"
DEFAULT_OUTBOUND_BACKUPQUANTITY = 1
NAME_OUTBOUND_ALLOWZEROHOP = "outbound.allowZeroHop"
DEFAULT_OUTBOUND_ALLOWZEROHOP = True
NAME_OUTBOUND_IPRESTRICTION = "outbound.IPRestriction"
DEFAULT_OUTBOUND_IPRESTRICTION = 2
NAME_OUTBOUND_PRIORITY = "outbound.priority"
NAME_I2CP_LEASESET_ENC_TYPE = "i2cp.leaseSetEncType"
DEFAULT_I2CP_LEASESET_ENC_TYPE = "0,4"
DEFAULT_I2P_OPTIONS = f"{NAME_I2CP_LEASESET_ENC_TYPE}={DEFAULT_I2CP_LEASESET_ENC_TYPE}"

T = TypeVar("T")


class SessionStyle(Enum):
    """Kind of SAM session."""

    STREAM = "STREAM"
    DATAGRAM = "DATAGRAM"
    RAW = "RAW"


class Status(Enum):
    """Outcome of a SAM request."""

    OK = "OK"
    EMPTY_ANSWER = "EMPTY_ANSWER"
    CLOSED_SOCKET = "CLOSED_SOCKET"
    CANNOT_PARSE_ERROR = "CANNOT_PARSE_ERROR"
    DUPLICATED_DEST = "DUPLICATED_DEST"
    DUPLICATED_ID = "DUPLICATED_ID"
    I2P_ERROR = "I2P_ERROR"
    INVALID_ID = "INVALID_ID"
    INVALID_KEY = "INVALID_KEY"
    CANT_REACH_PEER = "CANT_REACH_PEER"
    TIMEOUT = "TIMEOUT"
    NOVERSION = "NOVERSION"
    KEY_NOT_FOUND = "KEY_NOT_FOUND"
    PEER_NOT_FOUND = "PEER_NOT_FOUND"
    ALREADY_ACCEPTING = "ALREADY_ACCEPTING"
    FAILED = "FAILED"
    CLOSED = "CLOSED"


# Results a bridge may send in a RESULT= field, in the order they are checked.
_RECOGNISED_RESULTS = (
    Status.OK,
    Status.DUPLICATED_DEST,
    Status.DUPLICATED_ID,
    Status.I2P_ERROR,
    Status.INVALID_ID,
    Status.INVALID_KEY,
    Status.CANT_REACH_PEER,
    Status.TIMEOUT,
    Status.NOVERSION,
    Status.KEY_NOT_FOUND,
    Status.PEER_NOT_FOUND,
    Status.ALREADY_ACCEPTING,
)
_RESULT_BY_NAME = {status.value: status for status in _RECOGNISED_RESULTS}


@dataclass(frozen=True)
class Answer(Generic[T]):
    """A request status together with the value it carried, if any."""

    status: Status
    value: Optional[T] = None

    @property
    def ok(self) -> bool:
        return self.status is Status.OK


class SAMError(Exception):
    """Raised when talking to the SAM bridge fails."""

    def __init__(self, message: str, status: Optional[Status] = None):
        super().__init__(message)
        self.status = status


def _flag(value: bool) -> str:
    return "true" if value else "false"


def hello(min_ver: str, max_ver: str) -> str:
    """Build the HELLO VERSION handshake request."""
    return f"HELLO VERSION MIN={min_ver} MAX={max_ver}\n"


def session_create(
    style: SessionStyle,
    session_id: str,
    nickname: str,
    destination: str = GENERATE_MY_DESTINATION,
    options: str = "",
    signature_type: str = SIGNATURE_TYPE,
) -> str:
    """Build a SESSION CREATE request without PORT and HOST fields."""
    return (
        f"SESSION CREATE STYLE={SessionStyle(style).value} ID={session_id} "
        f"DESTINATION={destination} SIGNATURE_TYPE={signature_type} "
        f"inbound.nickname={nickname} {options}\n"
    )


def session_create_udp(
    style: SessionStyle,
    session_id: str,
    nickname: str,
    port: int,
    host: str = DEFAULT_ADDRESS,
    destination: str = GENERATE_MY_DESTINATION,
    options: str = "",
    signature_type: str = SIGNATURE_TYPE,
) -> str:
    """Build a SESSION CREATE request carrying the client's PORT and HOST."""
    return (
        f"SESSION CREATE STYLE={SessionStyle(style).value} ID={session_id} "
        f"DESTINATION={destination} SIGNATURE_TYPE={signature_type} "
        f"PORT={int(port)} HOST={host} inbound.nickname={nickname} {options}\n"
    )


def stream_accept(session_id: str, silent: bool = False) -> str:
    """Build a STREAM ACCEPT request."""
    return f"STREAM ACCEPT ID={session_id} SILENT={_flag(silent)}\n"


def stream_connect(session_id: str, destination: str, silent: bool = False) -> str:
    """Build a STREAM CONNECT request."""
    return (
        f"STREAM CONNECT ID={session_id} DESTINATION={destination} "
        f"SILENT={_flag(silent)}\n"
    )


def stream_forward(session_id: str, host: str, port: int, silent: bool = False) -> str:
    """Build a STREAM FORWARD request."""
    return (
        f"STREAM FORWARD ID={session_id} PORT={int(port)} HOST={host} "
        f"SILENT={_flag(silent)}\n"
    )


def datagram_send(nickname: str, destination: str) -> str:
    """Build the header line that precedes a datagram payload."""
    return f"3.0 {nickname} {destination}\n"


def naming_lookup(name: str) -> str:
    """Build a NAMING LOOKUP request."""
    return f"NAMING LOOKUP NAME={name}\n"


def dest_generate() -> str:
    """Build a DEST GENERATE request."""
    return "DEST GENERATE\n"


def check_answer(answer: str) -> Status:
    """Classify a bridge reply by its RESULT field."""
    if not answer:
        return Status.EMPTY_ANSWER
    result = get_value(answer, "RESULT")
    return _RESULT_BY_NAME.get(result, Status.CANNOT_PARSE_ERROR)


def get_value(answer: str, key: str) -> str:
    """Return the value of ``key=`` in a reply, or an empty string if absent."""
    if not key:
        return ""
    pattern = key + "="
    start = answer.find(pattern)
    if start < 0:
        return ""
    start += len(pattern)
    end = answer.find(" ", start)
    if end < 0:
        end = answer.find("\n", start)
    if end < 0:
        return answer[start:]
    return answer[start:end]