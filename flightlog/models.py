from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class TelemetryPoint:
    """One decoded sample. Every field but the timestamp may be missing."""
    timestamp_ms: int

    # Position
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None        # meters, relative to takeoff
    altitude_abs: Optional[float] = None    # meters, above sea level

    # Velocity
    speed: Optional[float] = None           # m/s, horizontal
    velocity_x: Optional[float] = None
    velocity_y: Optional[float] = None
    velocity_z: Optional[float] = None

    # Orientation (degrees)
    pitch: Optional[float] = None
    roll: Optional[float] = None
    yaw: Optional[float] = None

    # Gimbal (degrees)
    gimbal_pitch: Optional[float] = None
    gimbal_roll: Optional[float] = None
    gimbal_yaw: Optional[float] = None

    # Power
    battery_percent: Optional[int] = None
    battery_voltage: Optional[float] = None  # Volts
    battery_current: Optional[float] = None  # Amps
    battery_temp: Optional[float] = None     # Celsius

    # Status
    flight_mode: Optional[str] = None
    gps_signal: Optional[int] = None
    satellites: Optional[int] = None
    rc_signal: Optional[int] = None

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass
class FlightMetadata:
    """Flight-level facts known after decoding, before the store derives stats."""
    file_name: str
    file_hash: Optional[str] = None
    drone_model: Optional[str] = None
    drone_serial: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    home_lat: Optional[float] = None
    home_lon: Optional[float] = None
    container_version: Optional[int] = None


@dataclass
class DecodedLog:
    metadata: FlightMetadata
    points: List[TelemetryPoint] = field(default_factory=list)
    warnings: int = 0
