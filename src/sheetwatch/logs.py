import logging
import sys
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from sheetwatch.config import Settings, settings as default_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ZonedFormatter(logging.Formatter):
    """Renders asctime in the configured timezone rather than the host's."""

    def __init__(self, fmt: str, tz: ZoneInfo):
        super().__init__(fmt)
        self.tz = tz

    def formatTime(self, record, datefmt=None):
        ts = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return ts.strftime(datefmt)
        return ts.strftime("%Y-%m-%d %H:%M:%S")


def setup_logging(verbose: bool = False, config: Optional[Settings] = None) -> None:
    config = config or default_settings
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.INFO)
    formatter = ZonedFormatter(LOG_FORMAT, ZoneInfo(config.app.timezone))

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if config.logging.to_file:
        log_dir = Path(config.paths.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_rotating(log_dir / "application.log", logging.INFO, formatter, config.retention.days))
        handlers.append(_rotating(log_dir / "error.log", logging.WARNING, formatter, config.retention.days))

    logging.basicConfig(level=level, handlers=handlers, force=True)


def _rotating(path: Path, level: int, formatter: logging.Formatter, keep_days: int) -> logging.Handler:
    handler = TimedRotatingFileHandler(path, when="midnight", backupCount=max(keep_days, 1), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler
