from __future__ import annotations

import dataclasses
import threading

import pytest

from tftpd.config import ServerConfig
from tftpd.packet import decode
from tftpd.server import TftpServer
from tftpd.session import Session

PEER = ("127.0.0.1", 40000)


class ScriptedEndpoint:
    """Replays canned replies; ``None`` in the script stands for a timeout."""

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.sent: list[bytes] = []
        self.closed = False

    def send(self, data: bytes) -> None:
        self.sent.append(data)

    def recv(self) -> bytes:
        if not self.replies:
            raise TimeoutError
        reply = self.replies.pop(0)
        if reply is None:
            raise TimeoutError
        if isinstance(reply, bytes):
            return reply
        return reply.to_bytes()

    def close(self) -> None:
        self.closed = True

    @property
    def packets(self):
        return [decode(raw) for raw in self.sent]


def make_session(replies=(), **kwargs) -> Session:
    return Session(endpoint=ScriptedEndpoint(replies), peer=PEER, **kwargs)


@pytest.fixture
def roots(tmp_path):
    read_root = tmp_path / "read"
    write_root = tmp_path / "write"
    read_root.mkdir()
    write_root.mkdir()
    return read_root, write_root


@pytest.fixture
def config(roots):
    read_root, write_root = roots
    return ServerConfig(read_root=read_root, write_root=write_root, host="127.0.0.1", port=0, timeout_ms=200)


@pytest.fixture
def server(config):
    srv = TftpServer(dataclasses.replace(config, timeout_ms=500))
    srv.bind()
    t = threading.Thread(target=srv.serve_forever, daemon=True)
    t.start()
    yield srv
    srv.shutdown(timeout=5.0)
    t.join(timeout=5.0)
