from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from sheetwatch.exceptions import ConfigError

class AppSettings(BaseSettings):
    name: str = "Sheetwatch"
    version: str = "1.0.0"
    environment: str = "development"
    timezone: str = "Asia/Jerusalem"  # Used for log timestamps, report file dates and scan local_time

class ScanSettings(BaseSettings):
    root_directory: Path = Path("./data/input")
    file_pattern: str = "cxv*.xlsx"
    interval_minutes: int = 5
    match_value: str = "1"  # Column A value marking the row of interest

class PathSettings(BaseSettings):
    log_directory: Path = Path("./logs")
    db_path: Path = Path("./data/sheetwatch.db")


class RetentionSettings(BaseSettings):
    days: int = 30


class ReportSettings(BaseSettings):
    enabled: bool = True
    prefix: str = "scan-results"


class StatusMarkers(BaseSettings):
    active_marker: str = "1"
    maintenance_marker: str = "11"

class LoggingSettings(BaseSettings):
    log_requests: bool = True
    level: str = "INFO"
    to_file: bool = True

class StorageSettings(BaseSettings):
    """
    Runtime persistence selection:
    - sqlite (local/dev default)
    - firestore (cloud)
    """
    backend: str = "sqlite"  # sqlite|firestore
    firestore_project_id: Optional[str] = None
    firestore_database: str = "(default)"
    firestore_collection_prefix: str = "sheetwatch"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=".env", extra="ignore")
    app: AppSettings = AppSettings()
    scan: ScanSettings = ScanSettings()
    paths: PathSettings = PathSettings()
    retention: RetentionSettings = RetentionSettings()
    report: ReportSettings = ReportSettings()
    status: StatusMarkers = StatusMarkers()
    logging: LoggingSettings = LoggingSettings()
    storage: StorageSettings = StorageSettings()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        # Load from default path if exists
        default_path = Path("config/settings.yaml")
        path = config_path or (default_path if default_path.exists() else None)

        if not path:
            return cls()

        with open(path, "r") as f:
            config_data = yaml.safe_load(f) or {}

        return cls(**config_data)


def validate_settings(config: Settings) -> None:
    """
    Startup checks. Anything raised here is fatal before the first scan.
    """
    from sheetwatch.extract.pattern import compile_pattern

    compile_pattern(config.scan.file_pattern)

    root = Path(config.scan.root_directory)
    if not root.is_dir():
        raise ConfigError(f"Root directory does not exist: {root}")
    if config.scan.interval_minutes <= 0:
        raise ConfigError("scan.interval_minutes must be positive")
    if config.retention.days <= 0:
        raise ConfigError("retention.days must be positive")
    if not str(config.scan.match_value).strip():
        raise ConfigError("scan.match_value must not be blank")
    if (config.storage.backend or "").strip().lower() not in {"sqlite", "firestore"}:
        raise ConfigError(f"Unknown storage backend: {config.storage.backend}")

settings = Settings.load()
