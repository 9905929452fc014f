from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from .constants import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_UPLOAD_SIZE,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_MS,
)


@dataclass(frozen=True, slots=True)
class ServerConfig:
    read_root: Path
    write_root: Path
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE
    allowed_extensions: Tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self) -> None:
        object.__setattr__(self, "read_root", Path(self.read_root))
        object.__setattr__(self, "write_root", Path(self.write_root))
        object.__setattr__(self, "allowed_extensions", tuple(self.allowed_extensions))

        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.max_upload_size < 0:
            raise ValueError("max_upload_size must not be negative")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
