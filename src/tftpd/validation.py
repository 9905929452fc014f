"""Checks run by a session before any data is exchanged.

Each check returns nothing on success and raises the matching
:class:`~tftpd.errors.TransferError` otherwise.
"""
from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Iterable

from .errors import AccessDenied, AlreadyExists, InvalidExtension, NotFound, SizeLimitExceeded


def resolve(root: Path, filename: str) -> Path:
    base = root.resolve()
    candidate = (base / filename).resolve()
    if base not in candidate.parents:
        raise AccessDenied()
    return candidate


def check_extension(filename: str, allowed: Iterable[str]) -> None:
    if not filename.endswith(tuple(allowed)):
        raise InvalidExtension()


def check_download_source(path: Path) -> None:
    # ENAMETOOLONG and friends mean there is nothing to serve under that name
    try:
        st = path.stat()
    except OSError as exc:
        raise NotFound() from exc
    if stat.S_ISDIR(st.st_mode) or not os.access(path, os.R_OK):
        raise AccessDenied()


def check_upload_destination(path: Path, write_root: Path) -> None:
    try:
        path.stat()
    except FileNotFoundError:
        pass
    except OSError as exc:
        raise AccessDenied() from exc
    else:
        raise AlreadyExists()
    if not os.path.isdir(write_root) or not os.access(write_root, os.W_OK):
        raise AccessDenied("Access violation: Cannot write to directory")


def check_upload_size(written: int, incoming: int, limit: int) -> None:
    if written + incoming > limit:
        raise SizeLimitExceeded()
