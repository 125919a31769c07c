"""Engine configuration.

Mirrors the shape of the pricing ``config.json``:

    {
      "strategy": "hold",
      "occupancyWeights": {"sevenDay": 0.6, "thirtyDay": 0.3, "sixtyDay": 0.1},
      "occupancyThresholds": {"high": 0.85, "medium": 0.5, "low": 0.4, "critical": 0.2},
      "adjustments": {
        "increase": {"percentage": 2},
        "decrease": {"percentage": 2},
        "hold": {"oscillationPercentage": 1}
      },
      "logFile": "data/price_changes.json"
    }

camelCase and snake_case keys are both accepted. Threshold ordering
(critical < low < medium < high) is the caller's responsibility.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ..common.models import Strategy

logger = logging.getLogger(__name__)


class OccupancyWeights(BaseModel):
    """Weights of the 7/30/60-day occupancy windows (conceptually sum to 1)."""
    seven_day: float = Field(default=0.6, validation_alias=AliasChoices("sevenDay", "seven_day"))
    thirty_day: float = Field(default=0.3, validation_alias=AliasChoices("thirtyDay", "thirty_day"))
    sixty_day: float = Field(default=0.1, validation_alias=AliasChoices("sixtyDay", "sixty_day"))

    model_config = ConfigDict(populate_by_name=True)


class OccupancyThresholds(BaseModel):
    high: float = 0.85
    medium: float = 0.50
    low: float = 0.40
    critical: float = 0.20


class StepAdjustment(BaseModel):
    percentage: float = Field(default=2.0, ge=0)


class HoldAdjustment(BaseModel):
    oscillation_percentage: float = Field(
        default=1.0,
        ge=0,
        validation_alias=AliasChoices("oscillationPercentage", "oscillation_percentage"),
    )

    model_config = ConfigDict(populate_by_name=True)


class Adjustments(BaseModel):
    increase: StepAdjustment = Field(default_factory=StepAdjustment)
    decrease: StepAdjustment = Field(default_factory=StepAdjustment)
    hold: HoldAdjustment = Field(default_factory=HoldAdjustment)


class EngineConfig(BaseModel):
    """Read-only configuration consumed by the pricing engine."""
    strategy: Strategy | str = Strategy.HOLD
    occupancy_weights: OccupancyWeights = Field(
        default_factory=OccupancyWeights,
        validation_alias=AliasChoices("occupancyWeights", "occupancy_weights"),
    )
    occupancy_thresholds: OccupancyThresholds = Field(
        default_factory=OccupancyThresholds,
        validation_alias=AliasChoices("occupancyThresholds", "occupancy_thresholds"),
    )
    adjustments: Adjustments = Field(default_factory=Adjustments)
    log_file: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("logFile", "log_file"),
    )

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("strategy")
    @classmethod
    def _known_strategy(cls, value: Strategy | str) -> Strategy | str:
        # Unknown names are kept; the calculator treats them as "no change".
        try:
            return Strategy(value)
        except ValueError:
            return value

    @classmethod
    def load(cls, path: str | Path) -> EngineConfig:
        """Load config from a JSON or YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file cannot be parsed or validated.
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        config = cls.model_validate(data)
        logger.info("Loaded engine config from %s (default strategy: %s)", path, config.strategy)
        return config
