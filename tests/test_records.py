import struct

import pytest

from flightlog.exceptions import CorruptRecord
from flightlog.parser.accumulator import TelemetryAccumulator
from flightlog.parser.records import (
    Battery,
    OsdPosition,
    RecordReader,
    Status,
    Tick,
    UnknownRecord,
    Velocity,
    decode_record,
)

import logbuilder as lb


def test_position_record_scales_values():
    rec = decode_record(0x01, struct.pack(">iiii", 473977000, 85456000, 12500, 512300))

    assert rec == OsdPosition(47.3977, 8.5456, 12.5, 512.3)


def test_position_without_fix_has_no_coordinates():
    rec = decode_record(0x01, struct.pack(">iiii", 0, 0, 1000, 0))

    assert rec.latitude is None and rec.longitude is None
    assert rec.altitude == 1.0


def test_velocity_derives_horizontal_speed():
    rec = decode_record(0x02, struct.pack(">hhh", 300, 400, -50))

    assert isinstance(rec, Velocity)
    assert rec.speed == pytest.approx(5.0)
    assert rec.velocity_z == pytest.approx(-0.5)


def test_battery_and_status_records():
    bat = decode_record(0x05, struct.pack(">BHhh", 87, 15400, 520, 312))
    st = decode_record(0x06, struct.pack(">BBBB", 6, 5, 17, 98))

    assert bat == Battery(percent=87, voltage=15.4, current=5.2, temperature=31.2)
    assert st == Status(flight_mode="GPS", gps_signal=5, satellites=17, rc_signal=98)


def test_unknown_flight_mode_code_keeps_number():
    st = decode_record(0x06, struct.pack(">BBBB", 99, 0, 0, 0))

    assert st.flight_mode == "MODE_99"


def test_unknown_tag_becomes_catch_all_variant():
    rec = decode_record(0x7F, b"\x01\x02\x03")

    assert rec == UnknownRecord(tag=0x7F, length=3, raw=b"\x01\x02\x03")


def test_known_tag_with_wrong_size_is_corrupt():
    with pytest.raises(CorruptRecord):
        decode_record(0x10, b"\x00\x01")


@pytest.mark.parametrize("timestamp_ms", [2**63 + 5, 2**64 - 1])
def test_tick_beyond_calendar_range_is_corrupt(timestamp_ms):
    with pytest.raises(CorruptRecord):
        decode_record(0x10, struct.pack(">Q", timestamp_ms))


def test_tick_at_calendar_limit_is_accepted():
    assert decode_record(0x10, struct.pack(">Q", 253402300799999)) == Tick(253402300799999)


def test_reader_skips_bad_records_by_declared_length():
    stream = b"".join([
        lb.tick(1000),
        lb.record(0x10, b"\xff\xff"),       # corrupt tick
        lb.record(0x42, b"future data"),    # unknown tag
        lb.tick(2000),
    ])
    reader = RecordReader(stream)

    records = list(reader)

    assert [type(r) for r in records] == [Tick, UnknownRecord, Tick]
    assert reader.warnings == 2
    assert reader.unknown == 1


def test_reader_stops_at_truncated_tail_keeping_head():
    stream = lb.tick(1000) + lb.tick(2000) + lb.RECORD_HEADER.pack(0x01, 16) + b"\x00" * 5
    reader = RecordReader(stream)

    records = list(reader)

    assert records == [Tick(1000), Tick(2000)]
    assert reader.warnings == 1


def test_reader_flags_dangling_header_byte():
    reader = RecordReader(lb.tick(5) + b"\x01")

    assert list(reader) == [Tick(5)]
    assert reader.warnings == 1


def test_accumulator_carries_state_forward_between_ticks():
    acc = TelemetryAccumulator()
    for rec in [
        decode_record(0x05, struct.pack(">BHhh", 90, 15000, 0, 250)),
        Tick(100),
        decode_record(0x02, struct.pack(">hhh", 100, 0, 0)),
        Tick(200),
    ]:
        acc.feed(rec)

    first, second = acc.points
    assert first.battery_percent == 90 and first.speed is None
    assert second.battery_percent == 90 and second.speed == pytest.approx(1.0)


def test_accumulator_ignores_state_after_last_tick():
    acc = TelemetryAccumulator()
    acc.feed(Tick(1))
    acc.feed(decode_record(0x05, struct.pack(">BHhh", 50, 0, 0, 0)))

    assert len(acc.points) == 1
    assert acc.points[0].battery_percent is None


def test_emitted_points_are_immutable():
    acc = TelemetryAccumulator()
    point = acc.feed(Tick(1))

    with pytest.raises(Exception):
        point.altitude = 3.0
