import pytest
from pydantic import ValidationError

from hound_analysis.config import Settings, configure_logging


def test_defaults():
    s = Settings(_env_file=None)
    assert s.ANALYSIS_MAX_SECONDS == 120
    assert s.ANALYSIS_QUEUE == "analysis"


def test_env_override(monkeypatch):
    monkeypatch.setenv("analysis_queue", "analysis-low")
    monkeypatch.setenv("ANALYSIS_MAX_SECONDS", "30")
    s = Settings(_env_file=None)
    assert s.ANALYSIS_QUEUE == "analysis-low"
    assert s.ANALYSIS_MAX_SECONDS == 30


def test_analysis_window_is_capped(monkeypatch):
    monkeypatch.setenv("ANALYSIS_MAX_SECONDS", "600")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_configure_logging_accepts_level_names():
    configure_logging("debug")
    configure_logging("INFO")
