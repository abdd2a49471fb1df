import logging
from dataclasses import dataclass
from typing import Optional

from flightlog.exceptions import UnsupportedFormat
from flightlog.parser.constants import (
    FIRST_ENCRYPTED_VERSION,
    HEADER_SIZE,
    HEADER_STRUCT,
    MAGIC,
    MAX_VERSION,
    MIN_VERSION,
)

logger = logging.getLogger(__name__)


def _text(raw: bytes) -> Optional[str]:
    value = raw.split(b"\x00", 1)[0].decode("ascii", errors="replace").strip()
    return value or None


@dataclass(frozen=True)
class LogHeader:
    """Fixed container header"""
    version: int
    flags: int
    header_len: int
    payload_len: int
    drone_model: Optional[str]
    drone_serial: Optional[str]
    keychain_id: bytes

    @property
    def encrypted(self) -> bool:
        return self.version >= FIRST_ENCRYPTED_VERSION

    def payload(self, data: bytes) -> bytes:
        """Slice the payload region out of the whole file"""
        end = self.header_len + self.payload_len
        if end > len(data):
            logger.warning(
                f"Declared payload of {self.payload_len} bytes exceeds file size, "
                f"reading {len(data) - self.header_len} bytes"
            )
            end = len(data)
        return data[self.header_len:end]


def parse_header(data: bytes) -> LogHeader:
    if len(data) < HEADER_SIZE:
        raise UnsupportedFormat(f"File too short for a flight log header: {len(data)} bytes")

    (magic, version, flags, header_len, payload_len,
     model, serial, keychain_id) = HEADER_STRUCT.unpack_from(data, 0)

    if magic != MAGIC:
        raise UnsupportedFormat(f"Not a flight log (magic {magic!r})")
    if not MIN_VERSION <= version <= MAX_VERSION:
        raise UnsupportedFormat(f"Unsupported log version {version}")
    if header_len < HEADER_SIZE or header_len > len(data):
        raise UnsupportedFormat(f"Invalid header length {header_len}")

    return LogHeader(
        version=version,
        flags=flags,
        header_len=header_len,
        payload_len=payload_len,
        drone_model=_text(model),
        drone_serial=_text(serial),
        keychain_id=keychain_id,
    )
