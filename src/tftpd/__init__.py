"""TFTP server (RFC 1350 subset): RRQ/WRQ in octet mode, lock-step, no options.

Layout follows the protocol's layers:
- packet framing (``packet``) is separate from the per-transfer state machines
  (``transfer``, ``sender``, ``receiver``)
- every wait is bounded by a timeout and every retry by a ceiling
- sessions are plain objects, so the state machines run against any endpoint
"""

from .client import TftpClient
from .config import ServerConfig
from .server import TftpServer

__all__ = ["ServerConfig", "TftpClient", "TftpServer"]
