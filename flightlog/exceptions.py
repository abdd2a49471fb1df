class FlightLogError(Exception):
    """Base for all flight log import and query failures"""

    pass


class ConfigurationError(FlightLogError):
    pass


class CredentialMissing(ConfigurationError):
    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "DJI API key not configured. Set DJI_API_KEY environment variable "
            "or add to config.json"
        )


class KeyServiceError(FlightLogError):
    """Key service could not provide decryption key material"""

    pass


class KeyServiceTransportError(KeyServiceError):
    pass


class KeyServiceResponseError(KeyServiceError):
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(f"API returned error: {message}")


class LogFormatError(FlightLogError):
    pass


class UnsupportedFormat(LogFormatError):
    pass


class DecryptionFailed(LogFormatError):
    pass


class CorruptRecord(LogFormatError):
    def __init__(self, tag: int, offset: int, reason: str):
        self.tag = tag
        self.offset = offset
        self.reason = reason
        super().__init__(f"Corrupt record 0x{tag:02x} at offset {offset}: {reason}")


class StorageError(FlightLogError):
    pass


class FlightNotFound(FlightLogError):
    def __init__(self, flight_id: int):
        self.flight_id = flight_id
        super().__init__(f"Flight {flight_id} not found")
