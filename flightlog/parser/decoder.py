import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from flightlog.exceptions import CredentialMissing
from flightlog.keys.service import KeychainProvider, KeychainRequest
from flightlog.models import DecodedLog, FlightMetadata, TelemetryPoint
from flightlog.parser.accumulator import TelemetryAccumulator
from flightlog.parser.crypto import decrypt_payload
from flightlog.parser.header import LogHeader, parse_header
from flightlog.parser.records import RecordReader

logger = logging.getLogger(__name__)


def _utc(timestamp_ms: int) -> datetime:
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc)


def decode_records(stream: bytes) -> tuple[TelemetryAccumulator, int]:
    """Run a plaintext record stream through the accumulator. Returns it with the warning count."""
    reader = RecordReader(stream)
    acc = TelemetryAccumulator()
    for record in reader:
        acc.feed(record)
    if reader.unknown:
        logger.info(f"{reader.unknown} records with unknown tags skipped")
    return acc, reader.warnings


def build_metadata(
    file_name: str,
    header: LogHeader,
    points: List[TelemetryPoint],
    home: Optional[tuple] = None,
) -> FlightMetadata:
    meta = FlightMetadata(
        file_name=file_name,
        drone_model=header.drone_model,
        drone_serial=header.drone_serial,
        container_version=header.version,
    )
    if points:
        # points are sorted, so first/last are the time bounds
        meta.start_time = _utc(points[0].timestamp_ms)
        meta.end_time = _utc(points[-1].timestamp_ms)

    if home is None:
        home = next(((p.latitude, p.longitude) for p in points if p.has_position), None)
    if home is not None:
        meta.home_lat, meta.home_lon = home
    return meta


class LogDecoder:
    """
    Turns raw flight log bytes into flight metadata plus an ordered list of samples.

    Encrypted containers (V13+) need a keychain provider; without one, or
    without a configured API key, decoding fails with CredentialMissing.
    """

    def __init__(self, keychains: Optional[KeychainProvider] = None):
        self._keychains = keychains

    async def decode_file(self, path: str | Path) -> DecodedLog:
        path = Path(path)
        return await self.decode(path.read_bytes(), path.name)

    async def decode(self, data: bytes, file_name: str) -> DecodedLog:
        header = parse_header(data)
        payload = header.payload(data)

        if header.encrypted:
            if self._keychains is None:
                raise CredentialMissing()
            key = await self._keychains.get_key(
                KeychainRequest(
                    version=header.version,
                    keychain_id=header.keychain_id,
                    serial=header.drone_serial,
                )
            )
            payload = decrypt_payload(payload, key)

        acc, warnings = decode_records(payload)
        points = acc.sorted_points()

        meta = build_metadata(file_name, header, points, acc.home)
        meta.file_hash = hashlib.sha256(data).hexdigest()

        logger.info(
            f"Decoded {file_name}: v{header.version}, {len(points)} points, {warnings} warnings"
        )
        return DecodedLog(metadata=meta, points=points, warnings=warnings)
