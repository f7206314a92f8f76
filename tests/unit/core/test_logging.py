"""Tests for structlog configuration."""

import json

import pytest
from pydantic import ValidationError

from downstream_api.config.logging import LoggingSettings
from downstream_api.core.logging import get_logger, setup_logging


class TestSetupLogging:
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingSettings(format="json", level="info", show_time=False))

        get_logger("tests").info("downstream_call_done", status_code=200)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "downstream_call_done"
        assert record["status_code"] == 200
        assert record["level"] == "info"

    def test_level_filters_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(LoggingSettings(format="json", level="WARNING"))

        get_logger("tests").info("hidden_event")

        assert "hidden_event" not in capsys.readouterr().err

    def test_invalid_settings(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(level="LOUD")
        with pytest.raises(ValidationError):
            LoggingSettings(format="xml")
