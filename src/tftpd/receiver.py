from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional

from .config import ServerConfig
from .constants import BLOCK_MODULUS
from .errors import AccessDenied, AlreadyExists, TransferTimeout
from .packet import Ack, Packet
from .session import Session, State
from .transfer import exchange, next_block, require_data
from .validation import check_extension, check_upload_destination, check_upload_size, resolve

log = logging.getLogger(__name__)


@dataclass(slots=True)
class BlockReceiver:
    """Writes inbound DATA blocks to ``out`` in order, acking each one.

    ``greeting`` opens the exchange: ACK(0) on the server side of an upload, the
    RRQ itself on the client side of a download. A block with an unexpected
    number is dropped and the last good block is acked again, so a duplicate
    caused by a lost ACK gets its ACK resent and nothing else changes.
    """

    session: Session
    out: BinaryIO
    greeting: Packet
    attempts: int = 1
    max_size: Optional[int] = None
    timeout_message: str = "Timeout waiting for data"
    first_block: int = 1

    def run(self) -> int:
        session = self.session
        outbound: Packet = self.greeting
        expected = self.first_block % BLOCK_MODULUS
        last_good = (expected - 1) % BLOCK_MODULUS

        while True:
            packet = exchange(
                session,
                outbound,
                require_data,
                attempts=self.attempts,
                exhausted=TransferTimeout(self.timeout_message),
            )
            session.state = State.RECEIVE

            if packet.block != expected:
                log.debug("dropping block %d; expected %d", packet.block, expected)
                outbound = Ack(last_good)
                continue

            if self.max_size is not None:
                check_upload_size(session.bytes_transferred, len(packet.payload), self.max_size)

            try:
                self.out.write(packet.payload)
                if packet.final:
                    self.out.flush()
            except OSError as exc:
                raise AccessDenied() from exc

            session.bytes_transferred += len(packet.payload)
            session.block = last_good = expected
            expected = next_block(expected)
            outbound = Ack(last_good)

            if packet.final:
                session.send(outbound)
                log.debug("final block %d received (%d bytes total)", last_good, session.bytes_transferred)
                return session.bytes_transferred


def serve_upload(session: Session, filename: str, config: ServerConfig) -> None:
    session.state = State.VALIDATE
    check_extension(filename, config.allowed_extensions)
    path = resolve(config.write_root, filename)
    session.path = path
    check_upload_destination(path, config.write_root)

    try:
        out = open(path, "xb")
    except FileExistsError as exc:
        raise AlreadyExists() from exc
    except OSError as exc:
        raise AccessDenied() from exc

    with out:
        session.state = State.ACK_ZERO
        BlockReceiver(session, out, greeting=Ack(0), max_size=config.max_upload_size).run()
