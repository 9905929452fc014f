from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Optional, Union

from .constants import ACK, BLOCK_MODULUS, BLOCK_SIZE, DATA, ERROR, MAX_PACKET_SIZE, OCTET_MODE, RRQ, WRQ

OPCODE_FORMAT = "!H"
HEADER_FORMAT = "!HH"  # opcode, block number or error code

NUL = b"\x00"


class Opcode(enum.IntEnum):
    RRQ = RRQ
    WRQ = WRQ
    DATA = DATA
    ACK = ACK
    ERROR = ERROR


class ErrorCode(enum.IntEnum):
    NOT_DEFINED = 0
    FILE_NOT_FOUND = 1
    ACCESS_VIOLATION = 2
    DISK_FULL = 3
    ILLEGAL_OPERATION = 4
    UNKNOWN_TRANSFER_ID = 5
    FILE_EXISTS = 6
    NO_SUCH_USER = 7


class PacketError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class Request:
    opcode: Opcode
    filename: str
    mode: str = OCTET_MODE

    @property
    def is_read(self) -> bool:
        return self.opcode == Opcode.RRQ

    def to_bytes(self) -> bytes:
        return (
            struct.pack(OPCODE_FORMAT, int(self.opcode))
            + self.filename.encode("utf-8")
            + NUL
            + self.mode.encode("ascii")
            + NUL
        )


@dataclass(frozen=True, slots=True)
class MalformedRequest:
    """A datagram on the listening port that is not a usable RRQ/WRQ.

    ``opcode`` is set whenever the datagram was long enough to carry one, so a
    caller can tell an unknown opcode apart from a truncated request.
    """

    reason: str
    opcode: Optional[int] = None


@dataclass(frozen=True, slots=True)
class Data:
    block: int
    payload: bytes = b""

    def __post_init__(self) -> None:
        if not 0 <= self.block < BLOCK_MODULUS:
            raise ValueError(f"block number out of range: {self.block}")
        if len(self.payload) > BLOCK_SIZE:
            raise ValueError(f"payload too large: {len(self.payload)}")

    @property
    def final(self) -> bool:
        return len(self.payload) < BLOCK_SIZE

    def to_bytes(self) -> bytes:
        return struct.pack(HEADER_FORMAT, int(Opcode.DATA), self.block) + self.payload


@dataclass(frozen=True, slots=True)
class Ack:
    block: int

    def __post_init__(self) -> None:
        if not 0 <= self.block < BLOCK_MODULUS:
            raise ValueError(f"block number out of range: {self.block}")

    def to_bytes(self) -> bytes:
        return struct.pack(HEADER_FORMAT, int(Opcode.ACK), self.block)


@dataclass(frozen=True, slots=True)
class Error:
    code: int
    message: str = ""

    def to_bytes(self) -> bytes:
        # header + message + NUL must fit in one datagram
        message = self.message.encode("utf-8")[: MAX_PACKET_SIZE - struct.calcsize(HEADER_FORMAT) - 1]
        return struct.pack(HEADER_FORMAT, int(Opcode.ERROR), self.code) + message + NUL


Packet = Union[Request, Data, Ack, Error]


def _read_cstring(raw: bytes, start: int) -> tuple[bytes, int]:
    end = raw.find(NUL, start)
    if end < 0:
        raise PacketError("string is not NUL-terminated")
    return raw[start:end], end + 1


def parse_request(raw: bytes) -> Union[Request, MalformedRequest]:
    header_len = struct.calcsize(OPCODE_FORMAT)
    if len(raw) < header_len:
        return MalformedRequest("datagram too small to carry an opcode")

    (opcode,) = struct.unpack_from(OPCODE_FORMAT, raw)
    if opcode not in (Opcode.RRQ, Opcode.WRQ):
        return MalformedRequest(f"unexpected opcode {opcode}", opcode)

    try:
        filename, pos = _read_cstring(raw, header_len)
        mode, _ = _read_cstring(raw, pos)
        name = filename.decode("utf-8")
        mode_text = mode.decode("ascii")
    except PacketError as exc:
        return MalformedRequest(str(exc), opcode)
    except UnicodeDecodeError:
        return MalformedRequest("filename or mode is not valid text", opcode)

    if not name:
        return MalformedRequest("empty filename", opcode)
    if mode_text.lower() != OCTET_MODE:
        return MalformedRequest(f"unsupported transfer mode {mode_text!r}", opcode)

    return Request(opcode=Opcode(opcode), filename=name, mode=mode_text)


def decode(raw: bytes) -> Packet:
    if len(raw) < struct.calcsize(OPCODE_FORMAT):
        raise PacketError("datagram too small to carry an opcode")

    (opcode,) = struct.unpack_from(OPCODE_FORMAT, raw)
    if opcode in (Opcode.RRQ, Opcode.WRQ):
        request = parse_request(raw)
        if isinstance(request, MalformedRequest):
            raise PacketError(request.reason)
        return request

    if opcode not in (Opcode.DATA, Opcode.ACK, Opcode.ERROR):
        raise PacketError(f"unknown opcode {opcode}")

    header_len = struct.calcsize(HEADER_FORMAT)
    if len(raw) < header_len:
        raise PacketError(f"datagram too small for opcode {opcode}")
    _, field = struct.unpack_from(HEADER_FORMAT, raw)

    if opcode == Opcode.DATA:
        payload = bytes(raw[header_len:])
        if len(payload) > BLOCK_SIZE:
            raise PacketError(f"payload too large: {len(payload)}")
        return Data(block=field, payload=payload)

    if opcode == Opcode.ACK:
        return Ack(block=field)

    # a missing trailing NUL is tolerated
    end = raw.find(NUL, header_len)
    message = raw[header_len:] if end < 0 else raw[header_len:end]
    return Error(code=field, message=message.decode("utf-8", errors="replace"))
