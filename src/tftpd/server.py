from __future__ import annotations

import logging
import threading
from typing import Optional, Set, Union

from .config import ServerConfig
from .errors import IllegalOperation, PeerAborted, TransferError
from .net import Address, UdpEndpoint
from .packet import Error, ErrorCode, MalformedRequest, Request, parse_request
from .receiver import serve_upload
from .sender import serve_download
from .session import Direction, Session

log = logging.getLogger(__name__)

POLL_INTERVAL_MS = 500


def run_session(session: Session, request: Union[Request, MalformedRequest], config: ServerConfig) -> Session:
    host, port = session.peer
    try:
        if isinstance(request, MalformedRequest):
            log.warning("malformed request from %s:%d: %s", host, port, request.reason)
            raise IllegalOperation()

        session.direction = Direction.DOWNLOAD if request.is_read else Direction.UPLOAD
        log.info("%s request for %s from %s:%d", request.opcode.name, request.filename, host, port)
        if session.direction is Direction.DOWNLOAD:
            serve_download(session, request.filename, config)
        else:
            serve_upload(session, request.filename, config)
    except PeerAborted as exc:
        session.fail(exc)
        log.warning("peer %s:%d aborted the transfer: [%d] %s", host, port, exc.code, exc.message)
    except TransferError as exc:
        session.fail(exc)
        log.warning("transfer with %s:%d failed: [%d] %s", host, port, exc.code, exc.message)
        session.report(exc)
    except OSError as exc:
        session.fail(exc)
        log.warning("transport failure with %s:%d: %s", host, port, exc)
    else:
        session.finish()
        log.info(
            "transfer with %s:%d done; bytes=%d seconds=%.3f retransmits=%d",
            host,
            port,
            session.bytes_transferred,
            session.duration_s,
            session.retransmits,
        )
    return session


def handle_request(
    request: Union[Request, MalformedRequest],
    peer: Address,
    config: ServerConfig,
    cancel: Optional[threading.Event] = None,
) -> Session:
    endpoint = UdpEndpoint.connected(peer, host=config.host, timeout_ms=config.timeout_ms)
    session = Session(endpoint=endpoint, peer=peer, cancel=cancel)
    try:
        return run_session(session, request, config)
    finally:
        endpoint.close()


class TftpServer:
    """Listens for RRQ/WRQ datagrams and hands each one to a worker thread.

    At most ``config.max_workers`` sessions run at once; a request arriving
    while the pool is full is refused with an ERROR instead of queued, so the
    receive loop never waits on a transfer.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._endpoint: Optional[UdpEndpoint] = None
        self._stop = threading.Event()
        self._slots = threading.BoundedSemaphore(config.max_workers)
        self._workers: Set[threading.Thread] = set()
        self._workers_lock = threading.Lock()

    @property
    def address(self) -> Address:
        if self._endpoint is None:
            raise RuntimeError("server is not bound")
        return self._endpoint.address

    def bind(self) -> Address:
        if self._endpoint is None:
            self._endpoint = UdpEndpoint.listening(self.config.host, self.config.port, timeout_ms=POLL_INTERVAL_MS)
        return self.address

    def serve_forever(self) -> None:
        endpoint = self._endpoint
        if endpoint is None:
            self.bind()
            endpoint = self._endpoint
        host, port = self.address
        log.info(
            "listening on %s:%d; read_root=%s write_root=%s",
            host,
            port,
            self.config.read_root,
            self.config.write_root,
        )
        try:
            while not self._stop.is_set():
                try:
                    raw, peer = endpoint.recvfrom()
                except TimeoutError:
                    continue
                self.dispatch(raw, peer)
        finally:
            self.server_close()

    def dispatch(self, raw: bytes, peer: Address) -> Optional[threading.Thread]:
        request = parse_request(raw)
        if not self._slots.acquire(blocking=False):
            log.warning("refusing request from %s:%d; %d sessions active", peer[0], peer[1], self.config.max_workers)
            if self._endpoint is not None:
                try:
                    self._endpoint.sendto(Error(ErrorCode.NOT_DEFINED, "Server busy").to_bytes(), peer)
                except OSError as exc:
                    log.debug("could not refuse %s:%d: %s", peer[0], peer[1], exc)
            return None

        worker = threading.Thread(
            target=self._work,
            args=(request, peer),
            name=f"tftp-{peer[0]}:{peer[1]}",
            daemon=True,
        )
        with self._workers_lock:
            self._workers.add(worker)
        try:
            worker.start()
        except RuntimeError:
            with self._workers_lock:
                self._workers.discard(worker)
            self._slots.release()
            raise
        return worker

    def _work(self, request: Union[Request, MalformedRequest], peer: Address) -> None:
        try:
            handle_request(request, peer, self.config, cancel=self._stop)
        finally:
            self._slots.release()
            with self._workers_lock:
                self._workers.discard(threading.current_thread())

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        with self._workers_lock:
            workers = list(self._workers)
        for worker in workers:
            worker.join(timeout)

    def server_close(self) -> None:
        if self._endpoint is not None:
            self._endpoint.close()
            self._endpoint = None
