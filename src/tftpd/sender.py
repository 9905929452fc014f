from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO

from .config import ServerConfig
from .constants import BLOCK_SIZE, DEFAULT_MAX_RETRIES
from .errors import AccessDenied, TransferTimeout
from .packet import Data
from .session import Session, State
from .transfer import acknowledges, exchange, next_block
from .validation import check_download_source, resolve

log = logging.getLogger(__name__)


@dataclass(slots=True)
class BlockSender:
    """Streams ``f`` as DATA blocks, waiting for the exact ACK of each one."""

    session: Session
    f: BinaryIO
    attempts: int = DEFAULT_MAX_RETRIES
    first_block: int = 1

    def run(self) -> int:
        session = self.session
        block = self.first_block

        while True:
            try:
                chunk = self.f.read(BLOCK_SIZE)
            except OSError as exc:
                raise AccessDenied() from exc

            session.block = block
            exchange(
                session,
                Data(block=block, payload=chunk),
                acknowledges(block),
                attempts=self.attempts,
                exhausted=TransferTimeout("Timeout waiting for ACK"),
            )
            session.bytes_transferred += len(chunk)
            log.debug("block %d acked (%d bytes)", block, len(chunk))

            if len(chunk) < BLOCK_SIZE:
                return session.bytes_transferred
            block = next_block(block)


def serve_download(session: Session, filename: str, config: ServerConfig) -> None:
    session.state = State.VALIDATE
    path = resolve(config.read_root, filename)
    session.path = path
    check_download_source(path)

    try:
        f = open(path, "rb")
    except OSError as exc:
        raise AccessDenied() from exc

    with f:
        session.state = State.STREAM
        BlockSender(session, f, attempts=config.max_retries).run()
