from __future__ import annotations

OCTET_MODE = "octet"

# opcodes
RRQ = 1
WRQ = 2
DATA = 3
ACK = 4
ERROR = 5

BLOCK_SIZE = 512
HEADER_SIZE = 4
MAX_PACKET_SIZE = HEADER_SIZE + BLOCK_SIZE
BLOCK_MODULUS = 1 << 16

DEFAULT_PORT = 1234
DEFAULT_TIMEOUT_MS = 2000
DEFAULT_MAX_RETRIES = 5
DEFAULT_MAX_UPLOAD_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_WORKERS = 32
DEFAULT_ALLOWED_EXTENSIONS = (".txt", ".pdf", ".doc", ".docx", ".jpg", ".png", ".ul")
