from pathlib import Path
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_APP_DATA_DIR = Path.home() / ".flightlog"


def setup_logging(log_level: str | int = "INFO", log_file: Path | None = None) -> None:
    """Centralized logging configuration with environment variable support"""
    level = (
        log_level
        if isinstance(log_level, int)
        else getattr(logging, log_level.upper(), logging.INFO)
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    has_file_handler = False
    has_stream_handler = False

    log_path = log_file.resolve() if log_file is not None else None

    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler):
            existing_path = Path(getattr(handler, "baseFilename", "")).resolve()
            if existing_path == log_path:
                has_file_handler = True
        elif isinstance(handler, logging.StreamHandler):
            has_stream_handler = True

    if log_path is not None and not has_file_handler:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if not has_stream_handler:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        root_logger.addHandler(stream_handler)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FLIGHTLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    app_data_dir: Path = DEFAULT_APP_DATA_DIR

    # Empty means a SQLite file inside app_data_dir
    database_url: str = ""

    key_service_url: str = "https://dev.dji.com/openapi/v1/flight-records/keychains"
    key_service_timeout: float = 10.0

    log_level: str = "INFO"
    log_file: Path | None = None

    # Downsampling limit for chart queries, 0 disables it
    max_chart_points: int = 5000

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite+aiosqlite:///{(self.app_data_dir / 'flights.db').as_posix()}"

    @property
    def resolved_log_file(self) -> Path:
        return self.log_file or (self.app_data_dir / "flightlog.log")
