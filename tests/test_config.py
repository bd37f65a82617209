import logging

import pytest
import yaml

from sheetwatch.config import Settings, validate_settings
from sheetwatch.exceptions import ConfigError
from sheetwatch.logs import setup_logging


def test_defaults():
    config = Settings()
    assert config.scan.file_pattern == "cxv*.xlsx"
    assert config.scan.interval_minutes == 5
    assert config.retention.days == 30
    assert config.app.timezone == "Asia/Jerusalem"
    assert config.status.maintenance_marker == "11"


def test_load_from_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        yaml.safe_dump({"scan": {"file_pattern": "*.xlsx", "interval_minutes": 1}, "retention": {"days": 7}}),
        encoding="utf-8",
    )
    config = Settings.load(path)
    assert config.scan.file_pattern == "*.xlsx"
    assert config.scan.interval_minutes == 1
    assert config.retention.days == 7


def test_nested_env_override(monkeypatch):
    monkeypatch.setenv("SCAN__FILE_PATTERN", "abc*.xlsx")
    monkeypatch.setenv("RETENTION__DAYS", "3")
    config = Settings()
    assert config.scan.file_pattern == "abc*.xlsx"
    assert config.retention.days == 3


def _valid(tmp_path) -> Settings:
    config = Settings()
    config.scan.root_directory = tmp_path
    return config


def test_validate_accepts_good_settings(tmp_path):
    validate_settings(_valid(tmp_path))


@pytest.mark.parametrize(
    "mutate",
    [
        lambda c, p: setattr(c.scan, "root_directory", p / "missing"),
        lambda c, p: setattr(c.scan, "file_pattern", "cxv[.xlsx"),
        lambda c, p: setattr(c.scan, "interval_minutes", 0),
        lambda c, p: setattr(c.retention, "days", -1),
        lambda c, p: setattr(c.scan, "match_value", " "),
        lambda c, p: setattr(c.storage, "backend", "mongo"),
    ],
)
def test_validate_rejects_bad_settings(tmp_path, mutate):
    config = _valid(tmp_path)
    mutate(config, tmp_path)
    with pytest.raises(ConfigError):
        validate_settings(config)


def test_setup_logging_writes_rotating_files(tmp_path):
    config = Settings()
    config.paths.log_directory = tmp_path / "logs"
    config.app.timezone = "UTC"
    setup_logging(config=config)
    try:
        logging.getLogger("sheetwatch.test").info("hello")
        logging.getLogger("sheetwatch.test").error("broken")
        for handler in logging.getLogger().handlers:
            handler.flush()
        app_log = (tmp_path / "logs" / "application.log").read_text(encoding="utf-8")
        err_log = (tmp_path / "logs" / "error.log").read_text(encoding="utf-8")
    finally:
        logging.basicConfig(handlers=[logging.NullHandler()], force=True)
    assert "hello" in app_log and "broken" in app_log
    assert "broken" in err_log and "hello" not in err_log
    assert " - sheetwatch.test - INFO - hello" in app_log
