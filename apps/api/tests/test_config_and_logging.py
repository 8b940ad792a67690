"""
Tests for settings validation and the JSON log formatter
"""
import json
import logging
import pytest
from pydantic import ValidationError
from core.config import Settings, weekday_index
from core.logging import JSONFormatter
from services.time_windows import MONDAY, SUNDAY


class TestSettings:
    """Week anchors and windows from the environment"""

    def test_defaults(self):
        settings = Settings()
        assert settings.dashboard_week_start == SUNDAY
        assert settings.calendar_week_start == MONDAY
        assert settings.TRAINING_BLOCK_DAYS == 14

    def test_week_start_from_env(self, monkeypatch):
        monkeypatch.setenv("DASHBOARD_WEEK_START", "Monday")
        assert Settings().dashboard_week_start == MONDAY

    def test_unknown_weekday_rejected(self, monkeypatch):
        monkeypatch.setenv("CALENDAR_WEEK_START", "funday")
        with pytest.raises(ValidationError):
            Settings()

    def test_block_length_bounds(self, monkeypatch):
        monkeypatch.setenv("TRAINING_BLOCK_DAYS", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_weekday_index(self):
        assert weekday_index("sunday") == 6
        assert weekday_index(" Monday ") == 0


class TestJSONFormatter:

    def test_extra_fields_are_merged(self):
        record = logging.LogRecord("dash", logging.INFO, __file__, 10, "hello %s", ("runner",), None)
        record.extra_fields = {"path": "/dashboard"}
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "hello runner"
        assert data["level"] == "INFO"
        assert data["path"] == "/dashboard"
