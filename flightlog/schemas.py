"""
Read-side projections shared by the HTTP layer and the CLI.
Serialized with camelCase keys for the chart/map frontend.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Flight(CamelModel):
    """Flight summary for list display"""
    id: int
    file_name: str
    drone_model: Optional[str] = None
    drone_serial: Optional[str] = None
    start_time: Optional[str] = None
    duration_secs: Optional[float] = None
    total_distance: Optional[float] = None
    max_altitude: Optional[float] = None
    max_speed: Optional[float] = None
    point_count: Optional[int] = None


class TelemetryRecord(CamelModel):
    timestamp_ms: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    altitude: Optional[float] = None
    speed: Optional[float] = None
    battery_percent: Optional[int] = None
    pitch: Optional[float] = None
    roll: Optional[float] = None
    yaw: Optional[float] = None
    satellites: Optional[int] = None
    flight_mode: Optional[str] = None


class TelemetryData(CamelModel):
    """One array per series, aligned by index. ``time`` is seconds from flight start."""
    time: List[float] = Field(default_factory=list)
    altitude: List[Optional[float]] = Field(default_factory=list)
    speed: List[Optional[float]] = Field(default_factory=list)
    battery: List[Optional[int]] = Field(default_factory=list)
    satellites: List[Optional[int]] = Field(default_factory=list)
    pitch: List[Optional[float]] = Field(default_factory=list)
    roll: List[Optional[float]] = Field(default_factory=list)
    yaw: List[Optional[float]] = Field(default_factory=list)

    @classmethod
    def from_records(cls, records: Sequence[TelemetryRecord]) -> "TelemetryData":
        base_time = records[0].timestamp_ms if records else 0
        return cls(
            time=[(r.timestamp_ms - base_time) / 1000.0 for r in records],
            altitude=[r.altitude for r in records],
            speed=[r.speed for r in records],
            battery=[r.battery_percent for r in records],
            satellites=[r.satellites for r in records],
            pitch=[r.pitch for r in records],
            roll=[r.roll for r in records],
            yaw=[r.yaw for r in records],
        )


def build_track(records: Sequence[TelemetryRecord]) -> List[Tuple[float, float, float]]:
    """[lng, lat, alt] per record that has a position"""
    return [
        (r.longitude, r.latitude, r.altitude if r.altitude is not None else 0.0)
        for r in records
        if r.latitude is not None and r.longitude is not None
    ]


class FlightDataResponse(CamelModel):
    flight: Flight
    telemetry: TelemetryData
    track: List[Tuple[float, float, float]] = Field(default_factory=list)


class FlightStats(CamelModel):
    duration_secs: float = 0.0
    total_distance_m: float = 0.0
    max_altitude_m: float = 0.0
    max_speed_ms: float = 0.0
    avg_speed_ms: float = 0.0
    min_battery: int = 0
    home_location: Optional[Tuple[float, float]] = None  # [lon, lat]


class ImportResult(CamelModel):
    success: bool
    flight_id: Optional[int] = None
    message: str
    point_count: int = 0
    warnings: int = 0
