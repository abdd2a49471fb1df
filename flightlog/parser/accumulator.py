from dataclasses import asdict, dataclass
from typing import List, Optional, Tuple

from flightlog.models import TelemetryPoint
from flightlog.parser.records import (
    Attitude,
    Battery,
    Gimbal,
    Home,
    OsdPosition,
    Record,
    Status,
    Tick,
    UnknownRecord,
    Velocity,
)


@dataclass
class SampleState:
    """Current telemetry state, carried forward between ticks"""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    altitude_abs: Optional[float] = None
    speed: Optional[float] = None
    velocity_x: Optional[float] = None
    velocity_y: Optional[float] = None
    velocity_z: Optional[float] = None
    pitch: Optional[float] = None
    roll: Optional[float] = None
    yaw: Optional[float] = None
    gimbal_pitch: Optional[float] = None
    gimbal_roll: Optional[float] = None
    gimbal_yaw: Optional[float] = None
    battery_percent: Optional[int] = None
    battery_voltage: Optional[float] = None
    battery_current: Optional[float] = None
    battery_temp: Optional[float] = None
    flight_mode: Optional[str] = None
    gps_signal: Optional[int] = None
    satellites: Optional[int] = None
    rc_signal: Optional[int] = None


class TelemetryAccumulator:
    """Folds records into the current state and emits a sample at every tick."""

    def __init__(self):
        self.state = SampleState()
        self.points: List[TelemetryPoint] = []
        self.home: Optional[Tuple[float, float]] = None

    def feed(self, record: Record) -> Optional[TelemetryPoint]:
        s = self.state

        if isinstance(record, Tick):
            point = TelemetryPoint(timestamp_ms=record.timestamp_ms, **asdict(s))
            self.points.append(point)
            return point

        if isinstance(record, OsdPosition):
            s.latitude = record.latitude
            s.longitude = record.longitude
            s.altitude = record.altitude
            s.altitude_abs = record.altitude_abs
        elif isinstance(record, Velocity):
            s.velocity_x = record.velocity_x
            s.velocity_y = record.velocity_y
            s.velocity_z = record.velocity_z
            s.speed = record.speed
        elif isinstance(record, Attitude):
            s.pitch, s.roll, s.yaw = record.pitch, record.roll, record.yaw
        elif isinstance(record, Gimbal):
            s.gimbal_pitch, s.gimbal_roll, s.gimbal_yaw = record.pitch, record.roll, record.yaw
        elif isinstance(record, Battery):
            s.battery_percent = record.percent
            s.battery_voltage = record.voltage
            s.battery_current = record.current
            s.battery_temp = record.temperature
        elif isinstance(record, Status):
            s.flight_mode = record.flight_mode
            s.gps_signal = record.gps_signal
            s.satellites = record.satellites
            s.rc_signal = record.rc_signal
        elif isinstance(record, Home):
            self.home = (record.latitude, record.longitude)
        elif isinstance(record, UnknownRecord):
            pass
        return None

    def sorted_points(self) -> List[TelemetryPoint]:
        # Stable, so samples sharing a timestamp keep stream order
        return sorted(self.points, key=lambda p: p.timestamp_ms)
