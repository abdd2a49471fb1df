import logging
from pathlib import Path

from flightlog.db.repository import FlightRepository
from flightlog.exceptions import ConfigurationError, KeyServiceError, LogFormatError
from flightlog.parser.decoder import LogDecoder
from flightlog.schemas import ImportResult

logger = logging.getLogger(__name__)


class FlightImporter:
    """
    Import entrypoint: decode a log and hand it to the store.

    Decoding, credential and key-service failures come back as an unsuccessful
    ImportResult with nothing written. Storage failures are raised.
    """

    def __init__(self, decoder: LogDecoder, repository: FlightRepository):
        self.decoder = decoder
        self.repository = repository

    async def import_file(self, path: str | Path) -> ImportResult:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.error(f"Cannot read {path}: {e}")
            return ImportResult(success=False, message=f"Cannot read {path.name}: {e}")
        return await self.import_bytes(data, path.name)

    async def import_bytes(self, data: bytes, file_name: str) -> ImportResult:
        logger.info(f"Importing {file_name} ({len(data)} bytes)")
        try:
            decoded = await self.decoder.decode(data, file_name)
        except (LogFormatError, ConfigurationError, KeyServiceError) as e:
            logger.error(f"Import of {file_name} aborted: {e}")
            return ImportResult(success=False, message=str(e))

        result = await self.repository.import_flight(decoded.metadata, decoded.points)
        result.warnings = decoded.warnings
        if result.success and decoded.warnings:
            result.message += f" ({decoded.warnings} records skipped)"
        return result
