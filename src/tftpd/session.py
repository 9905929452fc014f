from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Tuple

from .errors import TransferError

log = logging.getLogger(__name__)


class Direction(enum.Enum):
    DOWNLOAD = "download"
    UPLOAD = "upload"


class State(enum.Enum):
    INIT = "init"
    VALIDATE = "validate"
    ACK_ZERO = "ack-zero"
    STREAM = "stream"
    RECEIVE = "receive"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class Session:
    """State of one transfer, owned by the thread that runs it.

    ``endpoint`` is anything with ``send(bytes)``, ``recv() -> bytes`` (raising
    ``TimeoutError``) and ``close()``; normally a :class:`~tftpd.net.UdpEndpoint`.
    """

    endpoint: Any
    peer: Tuple[str, int]
    direction: Optional[Direction] = None
    path: Optional[Path] = None
    block: int = 0
    retries: int = 0
    state: State = State.INIT
    error: Optional[BaseException] = None
    cancel: Optional[threading.Event] = None

    packets_sent: int = 0
    bytes_transferred: int = 0
    timeouts: int = 0
    retransmits: int = 0
    start_ts: float = field(default_factory=time.monotonic)
    end_ts: Optional[float] = None

    @property
    def duration_s(self) -> float:
        end = self.end_ts if self.end_ts is not None else time.monotonic()
        return max(0.0, end - self.start_ts)

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return (self.bytes_transferred * 8 / 1_000_000) / self.duration_s

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def send(self, packet) -> None:
        self.endpoint.send(packet.to_bytes())
        self.packets_sent += 1

    def report(self, error: TransferError) -> None:
        """Best-effort ERROR to the peer; never retried or acknowledged."""
        try:
            self.send(error.to_packet())
        except OSError as exc:
            log.debug("could not deliver error to %s:%d: %s", self.peer[0], self.peer[1], exc)

    def finish(self) -> None:
        self.state = State.DONE
        self.end_ts = time.monotonic()

    def fail(self, error: BaseException) -> None:
        self.state = State.FAILED
        self.error = error
        self.end_ts = time.monotonic()
