from __future__ import annotations
import asyncio
import hashlib
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import List, Optional, Sequence

import orjson
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flightlog import schemas
from flightlog.analysis.flight_stats import compute_stats
from flightlog.exceptions import FlightNotFound, StorageError
from flightlog.models import FlightMetadata, TelemetryPoint
from .models import Flight, TelemetryRecord

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "This flight log has already been imported"

# Columns projected into schemas.TelemetryRecord
_RECORD_COLUMNS = (
    TelemetryRecord.timestamp_ms,
    TelemetryRecord.latitude,
    TelemetryRecord.longitude,
    TelemetryRecord.altitude,
    TelemetryRecord.speed,
    TelemetryRecord.battery_percent,
    TelemetryRecord.pitch,
    TelemetryRecord.roll,
    TelemetryRecord.yaw,
    TelemetryRecord.satellites,
    TelemetryRecord.flight_mode,
)


def _ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def content_hash(points: Sequence[TelemetryPoint], metadata: FlightMetadata) -> str:
    """Hash of the decoded content, for drafts that arrive without a file hash."""
    h = hashlib.sha256()
    h.update(orjson.dumps([metadata.drone_serial, metadata.drone_model]))
    for p in points:
        h.update(orjson.dumps(asdict(p)))
    return h.hexdigest()


def downsample(rows: Sequence, max_points: Optional[int]) -> List:
    """Evenly spaced subset of at most max_points rows, first and last always kept."""
    n = len(rows)
    if not max_points or n <= max_points:
        return list(rows)
    if max_points == 1:
        return [rows[0]]
    return [rows[round(i * (n - 1) / (max_points - 1))] for i in range(max_points)]


def to_flight(f: Flight) -> schemas.Flight:
    start = _ensure_aware(f.start_time)
    return schemas.Flight(
        id=f.id,
        file_name=f.file_name,
        drone_model=f.drone_model,
        drone_serial=f.drone_serial,
        start_time=start.isoformat() if start else None,
        duration_secs=f.duration_secs,
        total_distance=f.total_distance,
        max_altitude=f.max_altitude,
        max_speed=f.max_speed,
        point_count=f.point_count,
    )


class FlightRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        # SQLite takes one writer at a time; reads are not serialized
        self._write_lock = asyncio.Lock()

    async def import_flight(
        self,
        metadata: FlightMetadata,
        points: Sequence[TelemetryPoint],
    ) -> schemas.ImportResult:
        """Write one decoded flight and all of its samples in a single transaction."""
        points = sorted(points, key=lambda p: p.timestamp_ms)
        file_hash = metadata.file_hash or content_hash(points, metadata)

        home = None
        if metadata.home_lat is not None and metadata.home_lon is not None:
            home = (metadata.home_lat, metadata.home_lon)
        stats = compute_stats(points, home)

        try:
            async with self._write_lock, self._session_factory() as s:
                async with s.begin():
                    existing = await s.scalar(
                        select(Flight.id).where(Flight.file_hash == file_hash)
                    )
                    if existing is not None:
                        logger.info(f"Skipping {metadata.file_name}: duplicate of flight {existing}")
                        return schemas.ImportResult(
                            success=False,
                            message=f"{DUPLICATE_MESSAGE} (flight {existing})",
                        )

                    f = Flight(
                        file_name=metadata.file_name,
                        file_hash=file_hash,
                        container_version=metadata.container_version,
                        drone_model=metadata.drone_model,
                        drone_serial=metadata.drone_serial,
                        start_time=metadata.start_time,
                        end_time=metadata.end_time,
                        duration_secs=stats.duration_secs,
                        total_distance=stats.total_distance,
                        max_altitude=stats.max_altitude,
                        max_speed=stats.max_speed,
                        avg_speed=stats.avg_speed,
                        min_battery=stats.min_battery,
                        home_lat=stats.home[0] if stats.home else None,
                        home_lon=stats.home[1] if stats.home else None,
                        point_count=len(points),
                    )
                    s.add(f)
                    await s.flush()       # populates f.id
                    fid = f.id

                    if points:
                        rows = []
                        for p in points:
                            d = asdict(p)
                            d["flight_id"] = fid
                            rows.append(d)
                        await s.execute(insert(TelemetryRecord), rows)
        except IntegrityError:
            # Lost a race with a concurrent import of the same file
            logger.info(f"Skipping {metadata.file_name}: duplicate file hash")
            return schemas.ImportResult(success=False, message=DUPLICATE_MESSAGE)
        except SQLAlchemyError as e:
            logger.error(f"Import of {metadata.file_name} failed: {e}")
            raise StorageError(f"Failed to store flight {metadata.file_name}: {e}") from e

        logger.info(f"Imported {metadata.file_name} as flight {fid} with {len(points)} points")
        return schemas.ImportResult(
            success=True,
            flight_id=fid,
            message=f"Imported {len(points)} telemetry points",
            point_count=len(points),
        )

    async def list_flights(self) -> List[schemas.Flight]:
        async with self._session_factory() as s:
            flights = (
                await s.execute(
                    select(Flight).order_by(
                        Flight.start_time.desc().nulls_last(), Flight.id.desc()
                    )
                )
            ).scalars().all()
        return [to_flight(f) for f in flights]

    async def _get(self, s: AsyncSession, flight_id: int) -> Flight:
        f = await s.get(Flight, flight_id)
        if f is None:
            raise FlightNotFound(flight_id)
        return f

    async def get_flight(self, flight_id: int) -> schemas.Flight:
        async with self._session_factory() as s:
            return to_flight(await self._get(s, flight_id))

    async def get_records(self, flight_id: int) -> List[schemas.TelemetryRecord]:
        async with self._session_factory() as s:
            await self._get(s, flight_id)
            rows = (
                await s.execute(
                    select(*_RECORD_COLUMNS)
                    .where(TelemetryRecord.flight_id == flight_id)
                    .order_by(TelemetryRecord.timestamp_ms, TelemetryRecord.id)
                )
            ).all()
        return [schemas.TelemetryRecord(**row._asdict()) for row in rows]

    async def get_flight_data(
        self, flight_id: int, max_points: Optional[int] = None
    ) -> schemas.FlightDataResponse:
        flight = await self.get_flight(flight_id)
        records = downsample(await self.get_records(flight_id), max_points)
        return schemas.FlightDataResponse(
            flight=flight,
            telemetry=schemas.TelemetryData.from_records(records),
            track=schemas.build_track(records),
        )

    async def get_stats(self, flight_id: int) -> schemas.FlightStats:
        async with self._session_factory() as s:
            f = await self._get(s, flight_id)

        home = None
        if f.home_lat is not None and f.home_lon is not None:
            home = (f.home_lon, f.home_lat)
        return schemas.FlightStats(
            duration_secs=f.duration_secs or 0.0,
            total_distance_m=f.total_distance or 0.0,
            max_altitude_m=f.max_altitude or 0.0,
            max_speed_ms=f.max_speed or 0.0,
            avg_speed_ms=f.avg_speed or 0.0,
            min_battery=f.min_battery or 0,
            home_location=home,
        )

    async def delete_flight(self, flight_id: int) -> bool:
        """Remove a flight and all of its telemetry together."""
        try:
            async with self._write_lock, self._session_factory() as s:
                async with s.begin():
                    await s.execute(
                        delete(TelemetryRecord).where(TelemetryRecord.flight_id == flight_id)
                    )
                    result = await s.execute(delete(Flight).where(Flight.id == flight_id))
        except SQLAlchemyError as e:
            logger.error(f"Delete of flight {flight_id} failed: {e}")
            raise StorageError(f"Failed to delete flight {flight_id}: {e}") from e

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted flight {flight_id}")
        return deleted
