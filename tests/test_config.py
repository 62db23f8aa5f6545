import os

import pytest

from fincore.config import DEFAULT_CONFIG, EngineConfig
from fincore.errors import InputError


def test_defaults():
    assert DEFAULT_CONFIG.due_soon_days == 7
    assert DEFAULT_CONFIG.history_months == 6
    assert DEFAULT_CONFIG.velocity_progress_cap == 150.0
    assert "opening balance" in DEFAULT_CONFIG.reconciliation_markers


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("FINCORE_DUE_SOON_DAYS", "14")
    monkeypatch.setenv("FINCORE_VELOCITY_TOLERANCE", "0.25")
    monkeypatch.setenv("FINCORE_RECONCILIATION_MARKERS", "Opening Balance, Write-off")
    config = EngineConfig.from_env(str(tmp_path / "missing.env"))

    assert config.due_soon_days == 14
    assert config.velocity_tolerance == 0.25
    assert config.reconciliation_markers == ("opening balance", "write-off")
    assert config.history_months == 6


def test_from_dotenv_file(monkeypatch, tmp_path):
    monkeypatch.delenv("FINCORE_HISTORY_MONTHS", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("FINCORE_HISTORY_MONTHS=12\n")
    try:
        assert EngineConfig.from_env(str(env_file)).history_months == 12
    finally:
        # load_dotenv writes straight into os.environ
        os.environ.pop("FINCORE_HISTORY_MONTHS", None)


@pytest.mark.parametrize("name,value", [
    ("FINCORE_DUE_SOON_DAYS", "soon"),
    ("FINCORE_DUE_SOON_DAYS", "-2"),
    ("FINCORE_HISTORY_MONTHS", "0"),
    ("FINCORE_MERCHANT_LIMIT", "0"),
    ("FINCORE_VELOCITY_TOLERANCE", "-0.1"),
])
def test_from_env_rejects_bad_values(monkeypatch, tmp_path, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(InputError):
        EngineConfig.from_env(str(tmp_path / "missing.env"))


def test_from_env_accepts_per_field_minimums(monkeypatch, tmp_path):
    monkeypatch.setenv("FINCORE_DUE_SOON_DAYS", "0")
    monkeypatch.setenv("FINCORE_VELOCITY_TOLERANCE", "0")
    monkeypatch.setenv("FINCORE_INSIGHT_IMPROVEMENT_THRESHOLD", "-12.5")
    config = EngineConfig.from_env(str(tmp_path / "missing.env"))

    assert config.due_soon_days == 0
    assert config.velocity_tolerance == 0.0
    assert config.insight_improvement_threshold == -12.5
