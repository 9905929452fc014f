from __future__ import annotations

import argparse
import json
import logging
import os

from .client import TftpClient
from .config import ServerConfig
from .constants import (
    DEFAULT_ALLOWED_EXTENSIONS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_UPLOAD_SIZE,
    DEFAULT_MAX_WORKERS,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_MS,
)
from .errors import TransferError
from .server import TftpServer
from .session import Session

log = logging.getLogger(__name__)


def _summary(role: str, session: Session) -> dict:
    return {
        "role": role,
        "bytes": session.bytes_transferred,
        "seconds": session.duration_s,
        "mbps": session.throughput_mbps,
        "timeouts": session.timeouts,
        "retransmits": session.retransmits,
    }


def cmd_serve(args: argparse.Namespace) -> int:
    config = ServerConfig(
        read_root=args.read_root,
        write_root=args.write_root,
        host=args.host,
        port=args.port,
        timeout_ms=args.timeout_ms,
        max_retries=args.max_retries,
        max_upload_size=args.max_upload_size,
        allowed_extensions=tuple(args.allow_ext or DEFAULT_ALLOWED_EXTENSIONS),
        max_workers=args.max_workers,
    )
    server = TftpServer(config)
    server.bind()
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        log.info("interrupted; shutting down")
    finally:
        server.shutdown(timeout=config.timeout_ms / 1000.0)
        server.server_close()
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    client = TftpClient(args.host, args.port, timeout_ms=args.timeout_ms, max_retries=args.max_retries)
    with open(args.out, "wb") as out:
        try:
            session = client.download(args.file, out)
        except TransferError as exc:
            log.error("download failed: [%d] %s", exc.code, exc.message)
            return 1

    payload = _summary("download", session)
    print(json.dumps(payload, indent=2) if args.json else payload)
    return 0


def cmd_put(args: argparse.Namespace) -> int:
    client = TftpClient(args.host, args.port, timeout_ms=args.timeout_ms, max_retries=args.max_retries)
    remote = args.remote or os.path.basename(args.file)
    with open(args.file, "rb") as src:
        try:
            session = client.upload(src, remote)
        except TransferError as exc:
            log.error("upload failed: [%d] %s", exc.code, exc.message)
            return 1

    payload = _summary("upload", session)
    print(json.dumps(payload, indent=2) if args.json else payload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tftpd", description="TFTP server and client (RRQ/WRQ, octet mode).")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--port", type=int, default=DEFAULT_PORT)
        x.add_argument("--timeout-ms", type=int, default=DEFAULT_TIMEOUT_MS)
        x.add_argument("--max-retries", type=int, default=DEFAULT_MAX_RETRIES)

    serve = sub.add_parser("serve", help="run the server")
    add_common(serve)
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--read-root", required=True, help="directory downloads are served from")
    serve.add_argument("--write-root", required=True, help="directory uploads are written to")
    serve.add_argument("--max-upload-size", type=int, default=DEFAULT_MAX_UPLOAD_SIZE)
    serve.add_argument("--allow-ext", action="append", help="allowed upload suffix; repeatable")
    serve.add_argument("--max-workers", type=int, default=DEFAULT_MAX_WORKERS)
    serve.set_defaults(func=cmd_serve)

    get = sub.add_parser("get", help="download a file")
    add_common(get)
    get.add_argument("--host", required=True)
    get.add_argument("--file", required=True, help="remote filename")
    get.add_argument("--out", required=True)
    get.add_argument("--json", action="store_true")
    get.set_defaults(func=cmd_get)

    put = sub.add_parser("put", help="upload a file")
    add_common(put)
    put.add_argument("--host", required=True)
    put.add_argument("--file", required=True, help="local file")
    put.add_argument("--remote", help="remote filename; defaults to the local basename")
    put.add_argument("--json", action="store_true")
    put.set_defaults(func=cmd_put)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
