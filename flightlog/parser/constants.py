"""
Flight log container constants
Shared by the header parser, the record reader and the test log builder
"""

import struct
from enum import IntEnum

# Container magic ("FLOG")
MAGIC = b"FLOG"

# Header: magic, version, flags, header_len, payload_len, model, serial, keychain id
HEADER_STRUCT = struct.Struct(">4sBBHI16s16s16s")
HEADER_SIZE = HEADER_STRUCT.size  # 60 bytes

# Container versions
MIN_VERSION = 1
MAX_VERSION = 14
FIRST_ENCRYPTED_VERSION = 13

# Encrypted payload: iv | AES-256-CBC(PKCS7(crc32 | records))
IV_SIZE = 16
AES_KEY_SIZE = 32
AES_BLOCK_SIZE = 16
CRC_SIZE = 4

# Record framing: tag (u8) + body length (u16)
RECORD_HEADER = struct.Struct(">BH")
RECORD_HEADER_SIZE = RECORD_HEADER.size

# Raw value scales
COORD_SCALE = 1e7
MM_PER_M = 1000.0
CM_PER_M = 100.0
DECIDEGREES = 10.0

# Latest sample timestamp accepted (9999-12-31T23:59:59.999Z, unix ms)
MAX_TIMESTAMP_MS = 253402300799999


class RecordTag(IntEnum):
    """Record type identifiers"""
    OSD_POSITION = 0x01
    VELOCITY = 0x02
    ATTITUDE = 0x03
    GIMBAL = 0x04
    BATTERY = 0x05
    STATUS = 0x06

    # Sampling boundary: flushes the current state as one sample
    TICK = 0x10
    HOME = 0x11


class FlightMode(IntEnum):
    """Flight controller mode codes carried by STATUS records"""
    MANUAL = 0
    ATTI = 1
    GPS = 6
    TAKEOFF = 10
    LANDING = 12
    GO_HOME = 15
    WAYPOINT = 21
    TRIPOD = 28
    SPORT = 31
    CINE = 41


def flight_mode_name(code: int) -> str:
    try:
        return FlightMode(code).name
    except ValueError:
        return f"MODE_{code}"
