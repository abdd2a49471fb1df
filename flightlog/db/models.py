from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Integer,
    Float,
    DateTime,
    ForeignKey,
    func,
    BigInteger,
    Index,
)


class Base(DeclarativeBase):
    pass


class Flight(Base):
    __tablename__ = "flights"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    container_version: Mapped[Optional[int]] = mapped_column(Integer)

    drone_model: Mapped[Optional[str]] = mapped_column(String(64))
    drone_serial: Mapped[Optional[str]] = mapped_column(String(64))

    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # Derived once at import
    duration_secs: Mapped[Optional[float]] = mapped_column(Float)
    total_distance: Mapped[Optional[float]] = mapped_column(Float)
    max_altitude: Mapped[Optional[float]] = mapped_column(Float)
    max_speed: Mapped[Optional[float]] = mapped_column(Float)
    avg_speed: Mapped[Optional[float]] = mapped_column(Float)
    min_battery: Mapped[Optional[int]] = mapped_column(Integer)

    home_lat: Mapped[Optional[float]] = mapped_column(Float)
    home_lon: Mapped[Optional[float]] = mapped_column(Float)
    point_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    telemetry: Mapped[list["TelemetryRecord"]] = relationship(
        back_populates="flight", cascade="all, delete-orphan"
    )


class TelemetryRecord(Base):
    __tablename__ = "telemetry"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    flight_id: Mapped[int] = mapped_column(
        ForeignKey("flights.id", ondelete="CASCADE"), nullable=False
    )
    timestamp_ms: Mapped[int] = mapped_column(BigInteger, nullable=False)

    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    altitude: Mapped[Optional[float]] = mapped_column(Float)
    altitude_abs: Mapped[Optional[float]] = mapped_column(Float)

    speed: Mapped[Optional[float]] = mapped_column(Float)
    velocity_x: Mapped[Optional[float]] = mapped_column(Float)
    velocity_y: Mapped[Optional[float]] = mapped_column(Float)
    velocity_z: Mapped[Optional[float]] = mapped_column(Float)

    pitch: Mapped[Optional[float]] = mapped_column(Float)
    roll: Mapped[Optional[float]] = mapped_column(Float)
    yaw: Mapped[Optional[float]] = mapped_column(Float)

    gimbal_pitch: Mapped[Optional[float]] = mapped_column(Float)
    gimbal_roll: Mapped[Optional[float]] = mapped_column(Float)
    gimbal_yaw: Mapped[Optional[float]] = mapped_column(Float)

    battery_percent: Mapped[Optional[int]] = mapped_column(Integer)
    battery_voltage: Mapped[Optional[float]] = mapped_column(Float)
    battery_current: Mapped[Optional[float]] = mapped_column(Float)
    battery_temp: Mapped[Optional[float]] = mapped_column(Float)

    flight_mode: Mapped[Optional[str]] = mapped_column(String(32))
    gps_signal: Mapped[Optional[int]] = mapped_column(Integer)
    satellites: Mapped[Optional[int]] = mapped_column(Integer)
    rc_signal: Mapped[Optional[int]] = mapped_column(Integer)

    flight: Mapped["Flight"] = relationship(back_populates="telemetry")

    __table_args__ = (
        Index("idx_telemetry_flight_time", "flight_id", "timestamp_ms"),
    )
