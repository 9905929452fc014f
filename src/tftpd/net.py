from __future__ import annotations

import logging
import socket
import time
from typing import Optional, Tuple

from .constants import MAX_PACKET_SIZE
from .packet import Error, ErrorCode

log = logging.getLogger(__name__)

Address = Tuple[str, int]


class UdpEndpoint:
    """One UDP socket plus the transfer ID (peer address) it talks to.

    ``peer_locked`` endpoints only accept datagrams from ``peer``. A client
    endpoint starts unlocked and locks onto whichever address answers first,
    since a server replies from a fresh port for every transfer.
    """

    def __init__(self, sock: socket.socket, peer: Optional[Address] = None, peer_locked: bool = False):
        self.sock = sock
        self.peer = peer
        self.peer_locked = peer_locked
        self._connected = False

    @classmethod
    def listening(cls, host: str, port: int, timeout_ms: int = 0) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind((host, port))
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock)

    @classmethod
    def connected(cls, peer: Address, host: str = "0.0.0.0", timeout_ms: int = 0) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((host, 0))
            sock.connect(peer)
        except OSError:
            sock.close()
            raise
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        endpoint = cls(sock, peer, peer_locked=True)
        endpoint._connected = True
        return endpoint

    @classmethod
    def sending(cls, server: Address, timeout_ms: int = 0) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, server)

    @property
    def address(self) -> Address:
        return self.sock.getsockname()

    def send(self, data: bytes) -> None:
        if self._connected:
            self.sock.send(data)
            return
        if self.peer is None:
            raise RuntimeError("endpoint has no peer")
        self.sock.sendto(data, self.peer)

    def sendto(self, data: bytes, addr: Address) -> None:
        self.sock.sendto(data, addr)

    def recvfrom(self, bufsize: int = MAX_PACKET_SIZE) -> Tuple[bytes, Address]:
        return self.sock.recvfrom(bufsize)

    def recv(self) -> bytes:
        timeout = self.sock.gettimeout()
        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            while True:
                data, addr = self.sock.recvfrom(MAX_PACKET_SIZE)
                if not self.peer_locked:
                    self.peer = addr
                    self.peer_locked = True
                    return data
                if addr == self.peer:
                    return data
                log.debug("datagram from unknown transfer ID %s:%d", addr[0], addr[1])
                self.sock.sendto(Error(ErrorCode.UNKNOWN_TRANSFER_ID, "Unknown transfer ID").to_bytes(), addr)
                # strangers must not stretch the wait past the original timeout
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError("timed out")
                    self.sock.settimeout(remaining)
        finally:
            self.sock.settimeout(timeout)

    def close(self) -> None:
        self.sock.close()
