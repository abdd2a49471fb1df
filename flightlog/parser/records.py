"""
Record variants of the decrypted record stream
Each known tag maps to one variant; anything else becomes an UnknownRecord
"""

import logging
import math
import struct
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Type, Union

from flightlog.exceptions import CorruptRecord
from flightlog.parser.constants import (
    CM_PER_M,
    COORD_SCALE,
    DECIDEGREES,
    MAX_TIMESTAMP_MS,
    MM_PER_M,
    RECORD_HEADER,
    RECORD_HEADER_SIZE,
    RecordTag,
    flight_mode_name,
)

logger = logging.getLogger(__name__)


@dataclass
class OsdPosition:
    """Aircraft position (Type 0x01)"""
    FORMAT = struct.Struct(">iiii")

    latitude: Optional[float]
    longitude: Optional[float]
    altitude: float
    altitude_abs: float

    @classmethod
    def deserialize(cls, body: bytes) -> "OsdPosition":
        lat, lon, alt_mm, alt_abs_mm = cls.FORMAT.unpack(body)
        # 0,0 is what the aircraft reports before it has a fix
        if lat == 0 and lon == 0:
            latitude = longitude = None
        else:
            latitude, longitude = lat / COORD_SCALE, lon / COORD_SCALE
        return cls(latitude, longitude, alt_mm / MM_PER_M, alt_abs_mm / MM_PER_M)


@dataclass
class Velocity:
    """Velocity components (Type 0x02)"""
    FORMAT = struct.Struct(">hhh")

    velocity_x: float
    velocity_y: float
    velocity_z: float

    @property
    def speed(self) -> float:
        return math.hypot(self.velocity_x, self.velocity_y)

    @classmethod
    def deserialize(cls, body: bytes) -> "Velocity":
        vx, vy, vz = cls.FORMAT.unpack(body)
        return cls(vx / CM_PER_M, vy / CM_PER_M, vz / CM_PER_M)


@dataclass
class Attitude:
    """Aircraft orientation (Type 0x03)"""
    FORMAT = struct.Struct(">hhh")

    pitch: float
    roll: float
    yaw: float

    @classmethod
    def deserialize(cls, body: bytes) -> "Attitude":
        pitch, roll, yaw = cls.FORMAT.unpack(body)
        return cls(pitch / DECIDEGREES, roll / DECIDEGREES, yaw / DECIDEGREES)


@dataclass
class Gimbal:
    """Gimbal orientation (Type 0x04)"""
    FORMAT = struct.Struct(">hhh")

    pitch: float
    roll: float
    yaw: float

    @classmethod
    def deserialize(cls, body: bytes) -> "Gimbal":
        pitch, roll, yaw = cls.FORMAT.unpack(body)
        return cls(pitch / DECIDEGREES, roll / DECIDEGREES, yaw / DECIDEGREES)


@dataclass
class Battery:
    """Battery state (Type 0x05)"""
    FORMAT = struct.Struct(">BHhh")

    percent: int
    voltage: float
    current: float
    temperature: float

    @classmethod
    def deserialize(cls, body: bytes) -> "Battery":
        percent, millivolts, centiamps, decidegrees = cls.FORMAT.unpack(body)
        return cls(
            percent=percent,
            voltage=millivolts / 1000.0,
            current=centiamps / 100.0,
            temperature=decidegrees / 10.0,
        )


@dataclass
class Status:
    """Flight controller status (Type 0x06)"""
    FORMAT = struct.Struct(">BBBB")

    flight_mode: str
    gps_signal: int
    satellites: int
    rc_signal: int

    @classmethod
    def deserialize(cls, body: bytes) -> "Status":
        mode, gps_signal, satellites, rc_signal = cls.FORMAT.unpack(body)
        return cls(flight_mode_name(mode), gps_signal, satellites, rc_signal)


@dataclass
class Tick:
    """Sampling boundary (Type 0x10)"""
    FORMAT = struct.Struct(">Q")

    timestamp_ms: int

    @classmethod
    def deserialize(cls, body: bytes) -> "Tick":
        (timestamp_ms,) = cls.FORMAT.unpack(body)
        if timestamp_ms > MAX_TIMESTAMP_MS:
            raise ValueError(f"timestamp {timestamp_ms} ms is out of range")
        return cls(timestamp_ms)


@dataclass
class Home:
    """Home point (Type 0x11)"""
    FORMAT = struct.Struct(">ii")

    latitude: float
    longitude: float

    @classmethod
    def deserialize(cls, body: bytes) -> "Home":
        lat, lon = cls.FORMAT.unpack(body)
        return cls(lat / COORD_SCALE, lon / COORD_SCALE)


@dataclass
class UnknownRecord:
    """Record with a tag this decoder does not know. Kept for forward compatibility."""
    tag: int
    length: int
    raw: bytes = field(repr=False)


KnownRecord = Union[OsdPosition, Velocity, Attitude, Gimbal, Battery, Status, Tick, Home]
Record = Union[KnownRecord, UnknownRecord]

RECORD_TYPES: Dict[RecordTag, Type] = {
    RecordTag.OSD_POSITION: OsdPosition,
    RecordTag.VELOCITY: Velocity,
    RecordTag.ATTITUDE: Attitude,
    RecordTag.GIMBAL: Gimbal,
    RecordTag.BATTERY: Battery,
    RecordTag.STATUS: Status,
    RecordTag.TICK: Tick,
    RecordTag.HOME: Home,
}


def decode_record(tag: int, body: bytes, offset: int = 0) -> Record:
    """Decode one record body. Raises CorruptRecord when a known tag has a bad body."""
    try:
        record_type = RECORD_TYPES[RecordTag(tag)]
    except ValueError:
        return UnknownRecord(tag=tag, length=len(body), raw=body)

    expected = record_type.FORMAT.size
    if len(body) != expected:
        raise CorruptRecord(tag, offset, f"expected {expected} bytes, got {len(body)}")
    try:
        return record_type.deserialize(body)
    except ValueError as e:
        raise CorruptRecord(tag, offset, str(e)) from e


class RecordReader:
    """
    Iterate over a plaintext stream of tag/length/body records.

    Bad records are skipped using their declared length and counted in
    ``warnings``; a record running past the end of the stream stops reading.
    """

    def __init__(self, stream: bytes):
        self._stream = stream
        self.warnings = 0
        self.unknown = 0

    def __iter__(self) -> Iterator[Record]:
        stream = self._stream
        offset = 0
        end = len(stream)

        while offset < end:
            if end - offset < RECORD_HEADER_SIZE:
                self.warnings += 1
                logger.warning(f"Truncated record header at offset {offset}, stopping")
                return

            tag, length = RECORD_HEADER.unpack_from(stream, offset)
            body_start = offset + RECORD_HEADER_SIZE
            body_end = body_start + length
            if body_end > end:
                self.warnings += 1
                logger.warning(
                    f"Record 0x{tag:02x} at offset {offset} declares {length} bytes "
                    f"but only {end - body_start} remain, stopping"
                )
                return

            body = stream[body_start:body_end]
            offset = body_end

            try:
                record = decode_record(tag, body, body_start - RECORD_HEADER_SIZE)
            except CorruptRecord as e:
                self.warnings += 1
                logger.warning(f"{e}, skipped")
                continue

            if isinstance(record, UnknownRecord):
                self.warnings += 1
                self.unknown += 1
                logger.debug(f"Unknown record 0x{tag:02x} ({length} bytes) skipped")

            yield record
