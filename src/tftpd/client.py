from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO

from .constants import DEFAULT_MAX_RETRIES, DEFAULT_PORT, DEFAULT_TIMEOUT_MS
from .errors import PeerAborted, TransferError, TransferTimeout
from .net import UdpEndpoint
from .packet import Opcode, Request
from .receiver import BlockReceiver
from .sender import BlockSender
from .session import Direction, Session, State
from .transfer import acknowledges, exchange

log = logging.getLogger(__name__)


@dataclass(slots=True)
class TftpClient:
    host: str
    port: int = DEFAULT_PORT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES

    def _open(self, direction: Direction) -> Session:
        server = (self.host, self.port)
        endpoint = UdpEndpoint.sending(server, timeout_ms=self.timeout_ms)
        return Session(endpoint=endpoint, peer=server, direction=direction)

    def download(self, filename: str, out: BinaryIO) -> Session:
        session = self._open(Direction.DOWNLOAD)
        log.info("RRQ %s from %s:%d", filename, self.host, self.port)
        try:
            BlockReceiver(
                session,
                out,
                greeting=Request(Opcode.RRQ, filename),
                attempts=self.max_retries,
            ).run()
        except PeerAborted as exc:
            session.fail(exc)
            raise
        except TransferError as exc:
            session.fail(exc)
            if session.endpoint.peer_locked:
                session.report(exc)
            raise
        finally:
            session.endpoint.close()
        session.finish()
        return session

    def upload(self, src: BinaryIO, filename: str) -> Session:
        session = self._open(Direction.UPLOAD)
        log.info("WRQ %s to %s:%d", filename, self.host, self.port)
        try:
            exchange(
                session,
                Request(Opcode.WRQ, filename),
                acknowledges(0),
                attempts=self.max_retries,
                exhausted=TransferTimeout("Timeout waiting for ACK"),
            )
            session.state = State.STREAM
            BlockSender(session, src, attempts=self.max_retries).run()
        except PeerAborted as exc:
            session.fail(exc)
            raise
        except TransferError as exc:
            session.fail(exc)
            if session.endpoint.peer_locked:
                session.report(exc)
            raise
        finally:
            session.endpoint.close()
        session.finish()
        return session
