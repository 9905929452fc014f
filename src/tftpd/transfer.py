"""Lock-step retry logic shared by both transfer directions.

``exchange`` sends one packet (or nothing), waits for one reply, and repeats
until ``expect`` accepts a reply or the attempts run out. A download calls it
with ``DATA(n)`` and an exact ``ACK(n)`` predicate; an upload calls it with the
last ``ACK`` and a DATA predicate, and a single attempt.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional

from .constants import BLOCK_MODULUS
from .errors import Cancelled, IllegalOperation, PeerAborted, TransferError
from .packet import Ack, Data, Error, Packet, PacketError, decode
from .session import Session

log = logging.getLogger(__name__)


def next_block(block: int) -> int:
    return (block + 1) % BLOCK_MODULUS


def acknowledges(block: int) -> Callable[[Packet], bool]:
    def expect(packet: Packet) -> bool:
        return isinstance(packet, Ack) and packet.block == block

    return expect


def require_data(packet: Packet) -> bool:
    if not isinstance(packet, Data):
        raise IllegalOperation()
    return True


def exchange(
    session: Session,
    outbound: Optional[Packet],
    expect: Callable[[Packet], bool],
    *,
    attempts: int,
    exhausted: TransferError,
) -> Packet:
    peer_host, peer_port = session.peer
    for attempt in range(1, attempts + 1):
        if session.cancelled:
            raise Cancelled()

        if outbound is not None:
            if attempt > 1:
                session.retransmits += 1
            session.send(outbound)

        try:
            raw = session.endpoint.recv()
        except TimeoutError:
            session.timeouts += 1
            session.retries = attempt
            log.debug("timeout; peer=%s:%d attempt=%d/%d", peer_host, peer_port, attempt, attempts)
            continue

        try:
            packet = decode(raw)
        except PacketError as exc:
            log.debug("undecodable datagram from %s:%d: %s", peer_host, peer_port, exc)
            raise IllegalOperation() from exc

        if isinstance(packet, Error):
            raise PeerAborted(packet.code, packet.message)

        if expect(packet):
            session.retries = 0
            return packet

        session.retries = attempt
        log.debug(
            "unexpected %s block=%s; peer=%s:%d attempt=%d/%d",
            type(packet).__name__,
            getattr(packet, "block", "-"),
            peer_host,
            peer_port,
            attempt,
            attempts,
        )

    raise exhausted
