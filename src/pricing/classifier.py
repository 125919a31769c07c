"""Strategy classification: increase, decrease or hold.

Recent adjustment momentum is checked first and can force a hold
regardless of occupancy. Only then do occupancy thresholds and the
occupancy trend pick a direction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from ..common.models import Strategy
from .config import EngineConfig
from .models import AdjustmentRecord, PropertyStatistics
from .occupancy import OccupancyReading
from .trend import occupancy_trend

logger = logging.getLogger(__name__)

MOMENTUM_WINDOW_DAYS = 7
MOMENTUM_MAX_RECORDS = 7

# Hold triggers
RUN_INCREASE_LIMIT = 3.0        # % accumulated by one run of increases
WINDOW_INCREASE_LIMIT = 4.0     # % of base-price increases in the window
CONSECUTIVE_DECREASE_LIMIT = 3

# Trend refinement
TREND_UP_POINTS = 5.0
TREND_DOWN_POINTS = -3.0
STRONG_SEVEN_DAY = 0.7
WEAK_WEIGHTED = 0.45


@dataclass
class MomentumGuard:
    """Summary of recent adjustments used to rate-limit strategy changes."""

    consecutive_increases: int = 0
    consecutive_decreases: int = 0
    cumulative_increase: float = 0.0
    cumulative_decrease: float = 0.0
    window_increase: float = 0.0
    window_decrease: float = 0.0

    @property
    def hold_reason(self) -> str | None:
        if self.cumulative_increase >= RUN_INCREASE_LIMIT:
            return f"increases totaling {self.cumulative_increase:.1f}% (>= {RUN_INCREASE_LIMIT:g}%)"
        if self.window_increase >= WINDOW_INCREASE_LIMIT:
            return f"7-day increases totaling {self.window_increase:.1f}% (>= {WINDOW_INCREASE_LIMIT:g}%)"
        if self.consecutive_decreases >= CONSECUTIVE_DECREASE_LIMIT:
            return (
                f"{self.consecutive_decreases} consecutive decreases "
                f"totaling {self.cumulative_decrease:.1f}%"
            )
        return None

    @property
    def forces_hold(self) -> bool:
        return self.hold_reason is not None


def recent_adjustments(
    history: list[AdjustmentRecord],
    as_of: date,
    days: int = MOMENTUM_WINDOW_DAYS,
) -> list[AdjustmentRecord]:
    """Adjustments dated within ``days`` before ``as_of`` (inclusive), oldest first."""
    cutoff = as_of - timedelta(days=days)
    return [adj for adj in history if cutoff <= adj.date <= as_of]


def momentum_guard(stats: PropertyStatistics | None, as_of: date) -> MomentumGuard:
    """Walk recent adjustments newest-first and measure same-direction runs."""
    guard = MomentumGuard()
    if stats is None or not stats.adjustment_history:
        return guard

    window = recent_adjustments(stats.adjustment_history, as_of)

    for adj in window:
        if adj.base_price_percent_change > 0:
            guard.window_increase += adj.base_price_percent_change
        elif adj.base_price_percent_change < 0:
            guard.window_decrease += abs(adj.base_price_percent_change)

    direction: Strategy | None = None
    for adj in reversed(window[-MOMENTUM_MAX_RECORDS:]):
        move = _direction_of(adj)
        if move is None or (direction is not None and move != direction):
            break
        direction = move
        if move == Strategy.INCREASE:
            guard.consecutive_increases += 1
            guard.cumulative_increase += max(
                adj.min_price_percent_change, adj.base_price_percent_change
            )
        else:
            guard.consecutive_decreases += 1
            guard.cumulative_decrease += abs(
                min(adj.min_price_percent_change, adj.base_price_percent_change)
            )

    return guard


def _direction_of(adj: AdjustmentRecord) -> Strategy | None:
    if adj.strategy == Strategy.INCREASE and (
        adj.min_price_percent_change > 0 or adj.base_price_percent_change > 0
    ):
        return Strategy.INCREASE
    if adj.strategy == Strategy.DECREASE and (
        adj.min_price_percent_change < 0 or adj.base_price_percent_change < 0
    ):
        return Strategy.DECREASE
    return None


def classify_strategy(
    property_id: str,
    occupancy: OccupancyReading,
    config: EngineConfig,
    stats: PropertyStatistics | None,
    as_of: date,
) -> Strategy | str:
    """Pick the pricing strategy for a property.

    Args:
        property_id: Property identifier (used for logging only).
        occupancy: Normalized current occupancy.
        config: Engine configuration.
        stats: The property's history, or ``None`` on cold start.
        as_of: The date treated as today.

    Returns:
        A ``Strategy``, or the configured default strategy unchanged when
        there is no history and no threshold fires.
    """
    weights = config.occupancy_weights
    thresholds = config.occupancy_thresholds
    weighted = occupancy.weighted(weights)

    logger.debug(
        "Strategy analysis for %s: 7d=%.2f%% 30d=%.2f%% 60d=%.2f%% weighted=%.2f%%",
        property_id,
        occupancy.seven_day * 100,
        occupancy.thirty_day * 100,
        occupancy.sixty_day * 100,
        weighted * 100,
    )

    guard = momentum_guard(stats, as_of)
    if stats is not None and stats.adjustment_history:
        logger.debug(
            "  %s: %d consecutive increases (%.1f%%), %d consecutive decreases (%.1f%%), "
            "7-day +%.1f%% / -%.1f%%",
            property_id,
            guard.consecutive_increases,
            guard.cumulative_increase,
            guard.consecutive_decreases,
            guard.cumulative_decrease,
            guard.window_increase,
            guard.window_decrease,
        )

    reason = guard.hold_reason
    if reason is not None:
        logger.info("Forcing HOLD for %s after %s", property_id, reason)
        return Strategy.HOLD

    strategy: Strategy | str = config.strategy
    if occupancy.seven_day >= thresholds.high:
        logger.info(
            "High occupancy for %s (%.1f%% >= %.0f%%)",
            property_id, occupancy.seven_day * 100, thresholds.high * 100,
        )
        strategy = Strategy.INCREASE
    elif weighted < thresholds.low and occupancy.seven_day < thresholds.medium:
        logger.info(
            "Low occupancy for %s (%.1f%% < %.0f%%)",
            property_id, weighted * 100, thresholds.low * 100,
        )
        strategy = Strategy.DECREASE
    elif stats is not None:
        trend = occupancy_trend(stats.occupancy_history)
        logger.debug("  %s occupancy trend: %.2f points", property_id, trend)
        if trend > TREND_UP_POINTS or occupancy.seven_day > STRONG_SEVEN_DAY:
            strategy = Strategy.INCREASE
        elif trend < TREND_DOWN_POINTS or weighted < WEAK_WEIGHTED:
            strategy = Strategy.DECREASE
        else:
            strategy = Strategy.HOLD

    logger.info("Selected strategy for %s: %s", property_id, getattr(strategy, "value", strategy))
    return strategy
