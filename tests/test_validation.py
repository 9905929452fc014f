from __future__ import annotations

import os

import pytest

from tftpd.constants import DEFAULT_ALLOWED_EXTENSIONS
from tftpd.errors import AccessDenied, AlreadyExists, InvalidExtension, NotFound, SizeLimitExceeded
from tftpd.validation import (
    check_download_source,
    check_extension,
    check_upload_destination,
    check_upload_size,
    resolve,
)


def test_resolve_stays_under_root(tmp_path):
    assert resolve(tmp_path, "a.txt") == (tmp_path / "a.txt").resolve()
    assert resolve(tmp_path, "sub/a.txt") == (tmp_path / "sub" / "a.txt").resolve()


@pytest.mark.parametrize("name", ["../escape.txt", "/etc/passwd", "sub/../../x.txt", "."])
def test_resolve_rejects_escapes(tmp_path, name):
    with pytest.raises(AccessDenied):
        resolve(tmp_path, name)


def test_extension_allow_list():
    check_extension("report.pdf", DEFAULT_ALLOWED_EXTENSIONS)
    check_extension("archive.tar.txt", DEFAULT_ALLOWED_EXTENSIONS)
    with pytest.raises(InvalidExtension) as info:
        check_extension("payload.exe", DEFAULT_ALLOWED_EXTENSIONS)
    assert info.value.code == 0
    assert info.value.message == "Invalid file type"


def test_extension_is_case_sensitive():
    with pytest.raises(InvalidExtension):
        check_extension("PHOTO.JPG", DEFAULT_ALLOWED_EXTENSIONS)


def test_download_source(tmp_path):
    with pytest.raises(NotFound):
        check_download_source(tmp_path / "missing.txt")
    with pytest.raises(AccessDenied):
        check_download_source(tmp_path)
    f = tmp_path / "here.txt"
    f.write_bytes(b"x")
    check_download_source(f)


def test_download_source_unreadable(tmp_path, monkeypatch):
    f = tmp_path / "secret.txt"
    f.write_bytes(b"x")
    monkeypatch.setattr(os, "access", lambda path, mode: False)
    with pytest.raises(AccessDenied):
        check_download_source(f)


def test_upload_destination(tmp_path):
    existing = tmp_path / "taken.txt"
    existing.write_bytes(b"x")
    with pytest.raises(AlreadyExists):
        check_upload_destination(existing, tmp_path)
    check_upload_destination(tmp_path / "new.txt", tmp_path)


def test_upload_destination_root_missing(tmp_path):
    root = tmp_path / "nowhere"
    with pytest.raises(AccessDenied) as info:
        check_upload_destination(root / "new.txt", root)
    assert info.value.message == "Access violation: Cannot write to directory"


def test_upload_destination_root_not_writable(tmp_path, monkeypatch):
    monkeypatch.setattr(os, "access", lambda path, mode: False)
    with pytest.raises(AccessDenied):
        check_upload_destination(tmp_path / "new.txt", tmp_path)


def test_upload_size():
    check_upload_size(1000, 24, 1024)
    with pytest.raises(SizeLimitExceeded):
        check_upload_size(1000, 25, 1024)
