"""Shared test fixtures for the listing pricing engine."""

import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure src is importable
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.common.models import ChangeRecord
from src.pricing.config import EngineConfig

# 2026-10-14 is a Wednesday, 2026-10-17 a Saturday
WEEKDAY = date(2026, 10, 14)
SATURDAY = date(2026, 10, 17)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def as_of() -> date:
    """A fixed weekday used as 'today'."""
    return WEEKDAY


@pytest.fixture
def engine_config(tmp_path) -> EngineConfig:
    """Config with the documented default thresholds and 2%/2%/1% steps."""
    return EngineConfig.model_validate({
        "strategy": "hold",
        "occupancyWeights": {"sevenDay": 0.6, "thirtyDay": 0.3, "sixtyDay": 0.1},
        "occupancyThresholds": {"high": 0.85, "medium": 0.50, "low": 0.40, "critical": 0.20},
        "adjustments": {
            "increase": {"percentage": 2},
            "decrease": {"percentage": 2},
            "hold": {"oscillationPercentage": 1},
        },
        "logFile": str(tmp_path / "price_changes.json"),
    })


@pytest.fixture
def ledger_path(engine_config: EngineConfig) -> Path:
    """Path of the (not yet existing) ledger used by ``engine_config``."""
    return engine_config.log_file


def make_change(
    property_id: str,
    day: date,
    *,
    min_price: tuple[float, float] | None = None,
    base_price: tuple[float, float] | None = None,
    occupancy: dict | None = None,
    error: str | None = None,
) -> ChangeRecord:
    """Build a ledger ChangeRecord the way the on-disk JSON would describe it."""
    data: dict = {"propertyId": property_id, "date": day.isoformat()}
    if occupancy is not None:
        data["occupancy"] = occupancy
    if min_price is not None:
        data["minPrice"] = {"before": min_price[0], "after": min_price[1]}
    if base_price is not None:
        data["basePrice"] = {"before": base_price[0], "after": base_price[1]}
    if error is not None:
        data["error"] = error
    return ChangeRecord.model_validate(data)


@pytest.fixture
def change_factory():
    """Expose ``make_change`` to tests as a fixture."""
    return make_change


@pytest.fixture
def mid_occupancy() -> dict:
    """Occupancy inside [low, high] with no threshold firing (weighted 0.6)."""
    return {"7_day_occ": "60%", "30_day_occ": "60%", "60_day_occ": "60%"}
