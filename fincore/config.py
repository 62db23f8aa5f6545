import os
from dataclasses import dataclass, fields
from typing import Optional

from dotenv import load_dotenv

from fincore.errors import InputError

ENV_PREFIX = "FINCORE_"

# Synthetic categories created on demand: (name, icon, color, type)
OPENING_BALANCE = ("Opening Balance", "wallet-plus", "#4CAF50", "income")
ADJUSTMENT = ("Adjustment", "scale-balance", "#9E9E9E", "expense")

GROUP_COLOR = "#6366F1"


@dataclass(frozen=True)
class EngineConfig:
    """Policy constants used by the scheduler and the aggregation engine."""

    due_soon_days: int = 7
    history_months: int = 6
    trend_window_days: int = 30
    projection_days: int = 30
    insight_improvement_threshold: float = -5.0
    insight_regression_threshold: float = 5.0
    velocity_tolerance: float = 0.10
    velocity_progress_cap: float = 150.0
    velocity_lookback_months: int = 3
    merchant_limit: int = 5
    reconciliation_markers: tuple[str, ...] = (
        "balance correction",
        "opening balance",
        "adjustment",
        "reconciliation",
    )

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "EngineConfig":
        """Build a config from ``FINCORE_*`` variables (a .env file is loaded first).

        ``FINCORE_DUE_SOON_DAYS=14`` overrides ``due_soon_days`` and so on;
        ``FINCORE_RECONCILIATION_MARKERS`` is a comma separated list.
        """
        load_dotenv(dotenv_path)
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            overrides[f.name] = _parse(f.name, raw, f.default)
        return cls(**overrides)


# Smallest accepted value per numeric field; thresholds are signed and unbounded.
_LOWER_BOUNDS = {
    "due_soon_days": 0,
    "history_months": 1,
    "trend_window_days": 1,
    "projection_days": 1,
    "velocity_tolerance": 0.0,
    "velocity_progress_cap": 0.0,
    "velocity_lookback_months": 1,
    "merchant_limit": 1,
}


def _parse(name: str, raw: str, default):
    if isinstance(default, tuple):
        return tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    try:
        value = type(default)(raw)
    except ValueError as e:
        raise InputError(f"invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e
    bound = _LOWER_BOUNDS.get(name)
    if bound is not None and value < bound:
        raise InputError(f"{ENV_PREFIX}{name.upper()} must be >= {bound}, got {value}")
    return value


DEFAULT_CONFIG = EngineConfig()
