from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from flightlog.db.models import Flight, TelemetryRecord
from flightlog.db.repository import FlightRepository, downsample
from flightlog.exceptions import FlightNotFound, StorageError
from flightlog.models import FlightMetadata, TelemetryPoint
from flightlog.utils.geo import haversine_m

T0 = 1_700_000_000_000


def make_flight(name="FLY001.DAT", start=T0, n=4, file_hash=None):
    points = [
        TelemetryPoint(
            start + i * 500,
            latitude=47.0 + i * 0.001 if i != 1 else None,
            longitude=8.0 if i != 1 else None,
            altitude=10.0 * i,
            speed=float(i),
            battery_percent=100 - i,
            pitch=1.0,
            satellites=12,
        )
        for i in range(n)
    ]
    meta = FlightMetadata(
        file_name=name,
        file_hash=file_hash,
        drone_model="Mavic 3",
        drone_serial="SN1",
        start_time=datetime.fromtimestamp(start / 1000, tz=timezone.utc),
        end_time=datetime.fromtimestamp((start + (n - 1) * 500) / 1000, tz=timezone.utc),
        home_lat=47.0,
        home_lon=8.0,
    )
    return meta, points


async def count_rows(repo, model, **where):
    async with repo._session_factory() as s:
        q = select(func.count()).select_from(model)
        for k, v in where.items():
            q = q.where(getattr(model, k) == v)
        return await s.scalar(q)


@pytest.mark.asyncio
async def test_import_writes_flight_and_rows(repository):
    meta, points = make_flight()

    result = await repository.import_flight(meta, points)

    assert result.success is True
    assert result.point_count == 4
    assert await count_rows(repository, TelemetryRecord, flight_id=result.flight_id) == 4
    flight = await repository.get_flight(result.flight_id)
    assert flight.point_count == 4
    assert flight.drone_model == "Mavic 3"
    assert flight.start_time.startswith("2023-11-14T22:13:20")


@pytest.mark.asyncio
async def test_reimport_of_same_content_is_rejected(repository):
    meta, points = make_flight(file_hash="abc")
    first = await repository.import_flight(meta, points)

    meta2, points2 = make_flight(name="copy.DAT", file_hash="abc")
    second = await repository.import_flight(meta2, points2)

    assert first.success is True
    assert second.success is False
    assert "already been imported" in second.message
    assert await count_rows(repository, Flight) == 1
    assert await count_rows(repository, TelemetryRecord) == 4


@pytest.mark.asyncio
async def test_hash_is_computed_when_missing(repository):
    meta, points = make_flight()
    assert (await repository.import_flight(meta, points)).success

    again_meta, again_points = make_flight()
    assert (await repository.import_flight(again_meta, again_points)).success is False

    other_meta, other_points = make_flight(start=T0 + 1)
    assert (await repository.import_flight(other_meta, other_points)).success is True


@pytest.mark.asyncio
async def test_stats_are_stored_at_import(repository):
    meta, points = make_flight()
    fid = (await repository.import_flight(meta, points)).flight_id

    stats = await repository.get_stats(fid)

    expected = haversine_m(47.0, 8.0, 47.002, 8.0) + haversine_m(47.002, 8.0, 47.003, 8.0)
    assert stats.total_distance_m == pytest.approx(expected)
    assert stats.duration_secs == pytest.approx(1.5)
    assert stats.max_altitude_m == 30.0
    assert stats.max_speed_ms == 3.0
    assert stats.avg_speed_ms == pytest.approx(1.5)
    assert stats.min_battery == 97
    assert stats.home_location == (8.0, 47.0)


@pytest.mark.asyncio
async def test_flight_data_projection(repository):
    meta, points = make_flight()
    fid = (await repository.import_flight(meta, points)).flight_id

    data = await repository.get_flight_data(fid)

    assert data.telemetry.time == [0.0, 0.5, 1.0, 1.5]
    assert data.telemetry.altitude == [0.0, 10.0, 20.0, 30.0]
    assert data.telemetry.battery == [100, 99, 98, 97]
    # point 1 has no position: in the series, not in the track
    assert len(data.track) == 3
    assert data.track[0] == (8.0, 47.0, 0.0)
    assert data.flight.id == fid


@pytest.mark.asyncio
async def test_rows_are_read_in_timestamp_order(repository):
    meta, points = make_flight(n=6)
    fid = (await repository.import_flight(meta, list(reversed(points)))).flight_id

    records = await repository.get_records(fid)

    stamps = [r.timestamp_ms for r in records]
    assert stamps == sorted(stamps)


@pytest.mark.asyncio
async def test_max_points_downsamples_keeping_ends(repository):
    meta, points = make_flight(n=20)
    fid = (await repository.import_flight(meta, points)).flight_id

    data = await repository.get_flight_data(fid, max_points=5)

    assert len(data.telemetry.time) == 5
    assert data.telemetry.time[0] == 0.0
    assert data.telemetry.time[-1] == pytest.approx(9.5)


def test_downsample_helper():
    assert downsample(list(range(10)), None) == list(range(10))
    assert downsample(list(range(10)), 3) == [0, 4, 9]
    assert downsample(list(range(3)), 10) == [0, 1, 2]
    assert downsample(list(range(10)), 1) == [0]


@pytest.mark.asyncio
async def test_list_is_most_recent_first(repository):
    older = await repository.import_flight(*make_flight("old.DAT", start=T0))
    newer = await repository.import_flight(*make_flight("new.DAT", start=T0 + 86_400_000))

    flights = await repository.list_flights()

    assert [f.id for f in flights] == [newer.flight_id, older.flight_id]
    assert flights[0].to_json()["fileName"] == "new.DAT"


@pytest.mark.asyncio
async def test_delete_removes_flight_and_telemetry(repository):
    keep = await repository.import_flight(*make_flight("keep.DAT", start=T0))
    gone = await repository.import_flight(*make_flight("gone.DAT", start=T0 + 5))

    assert await repository.delete_flight(gone.flight_id) is True
    assert await repository.delete_flight(gone.flight_id) is False

    assert await count_rows(repository, TelemetryRecord, flight_id=gone.flight_id) == 0
    assert await count_rows(repository, TelemetryRecord, flight_id=keep.flight_id) == 4
    with pytest.raises(FlightNotFound):
        await repository.get_flight_data(gone.flight_id)


@pytest.mark.asyncio
async def test_unknown_flight_raises_not_found(repository):
    with pytest.raises(FlightNotFound):
        await repository.get_stats(404)


@pytest.mark.asyncio
async def test_flight_without_samples(repository):
    meta = FlightMetadata(file_name="empty.DAT", file_hash="empty")

    result = await repository.import_flight(meta, [])
    data = await repository.get_flight_data(result.flight_id)
    stats = await repository.get_stats(result.flight_id)

    assert result.success and result.point_count == 0
    assert data.telemetry.time == [] and data.track == []
    assert stats.duration_secs == 0.0 and stats.home_location is None


class _BrokenSession:
    """Session stand-in whose transaction fails like a full disk would."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def begin(self):
        return self

    async def scalar(self, *args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))


@pytest.mark.asyncio
async def test_storage_failure_is_fatal_for_that_import():
    repo = FlightRepository(lambda: _BrokenSession())

    with pytest.raises(StorageError):
        await repo.import_flight(*make_flight())
