from __future__ import annotations

from typing import Optional

from .packet import Error, ErrorCode


class TransferError(Exception):
    """Terminal failure of one transfer session.

    Carries the TFTP error code and message reported to the peer.
    """

    code: int = ErrorCode.NOT_DEFINED
    default_message = "Transfer failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_packet(self) -> Error:
        return Error(code=int(self.code), message=self.message)


class NotFound(TransferError):
    code = ErrorCode.FILE_NOT_FOUND
    default_message = "File not found"


class AccessDenied(TransferError):
    code = ErrorCode.ACCESS_VIOLATION
    default_message = "Access violation"


class AlreadyExists(TransferError):
    code = ErrorCode.FILE_EXISTS
    default_message = "File already exists"


class InvalidExtension(TransferError):
    default_message = "Invalid file type"


class SizeLimitExceeded(TransferError):
    default_message = "File exceeds size limit"


class IllegalOperation(TransferError):
    code = ErrorCode.ILLEGAL_OPERATION
    default_message = "Illegal TFTP operation"


class TransferTimeout(TransferError):
    default_message = "Timeout waiting for ACK"


class Cancelled(TransferError):
    default_message = "Server shutting down"


class PeerAborted(TransferError):
    """The peer sent an ERROR packet. Never answered."""

    def __init__(self, code: int, message: str):
        super().__init__(message or f"peer error {code}")
        self.code = code
