"""Adjustment calculator.

Turns a strategy into a signed percentage and a new price. Computation
is pure (``compute_adjustment``); committing the outcome to a property's
statistics is a separate, explicit step (``apply_adjustment``).

Rules:
- Positive changes to one price type are capped at 5% per trailing 7 days.
  An increase squeezed below 1% by the cap becomes a -1% nudge instead.
- "hold" oscillates around the current price, alternating direction.
- A min price never exceeds 80% of the latest recorded base price.
"""

from __future__ import annotations

import bisect
import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from ..common.models import PriceType, Strategy
from .classifier import recent_adjustments
from .config import EngineConfig
from .models import AdjustmentRecord, AdjustmentResult, PricePoint, PropertyStatistics
from .occupancy import OccupancyReading

logger = logging.getLogger(__name__)

WEEKLY_INCREASE_CAP = 5.0
HOLD_INCREASE_CAP = 4.5
MIN_MEANINGFUL_INCREASE = 1.0
CAPPED_NUDGE = -1.0

VERY_HIGH_SEVEN_DAY = 0.95
VERY_LOW_SEVEN_DAY = 0.30

VERY_HIGH_MULTIPLIER = 1.5
HIGH_MULTIPLIER = 1.2
CRITICAL_MULTIPLIER = 1.5
VERY_LOW_MULTIPLIER = 1.2
HOLD_OVERRIDE_MULTIPLIER = 0.7
WEEKEND_UP_MULTIPLIER = 1.2
WEEKEND_DOWN_MULTIPLIER = 0.8

MIN_TO_BASE_RATIO = 0.8


def round_price(value: float) -> int:
    """Round to a whole, non-negative currency unit (halves round up)."""
    rounded = int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(rounded, 0)


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def weekly_increase(
    stats: PropertyStatistics | None,
    price_type: PriceType,
    as_of: date,
) -> float:
    """Sum of positive percent changes to ``price_type`` in the trailing 7 days."""
    if stats is None:
        return 0.0
    total = 0.0
    for adj in recent_adjustments(stats.adjustment_history, as_of):
        change = adj.change_for(price_type)
        if change > 0:
            total += change
    return total


def cap_increase(percentage: float, weekly: float) -> float:
    """Apply the rolling 7-day increase cap to a proposed positive change."""
    if weekly + percentage <= WEEKLY_INCREASE_CAP:
        return percentage
    capped = max(0.0, WEEKLY_INCREASE_CAP - weekly)
    logger.info(
        "Capping increase: 7-day +%.1f%% plus planned %.1f%% exceeds %.0f%%, reducing to %.1f%%",
        weekly, percentage, WEEKLY_INCREASE_CAP, capped,
    )
    if capped < MIN_MEANINGFUL_INCREASE:
        logger.info("Capped increase too small (%.1f%%), nudging down %.1f%% instead", capped, CAPPED_NUDGE)
        return CAPPED_NUDGE
    return capped


def compute_adjustment(
    property_id: str,
    current_price: float,
    occupancy: OccupancyReading,
    price_type: PriceType,
    strategy: Strategy | str,
    config: EngineConfig,
    stats: PropertyStatistics | None,
    as_of: date,
) -> AdjustmentResult:
    """Compute the new price for one price type without touching ``stats``.

    Returns an ``AdjustmentResult`` whose ``record`` is ``None`` when the
    strategy is not one of increase/decrease/hold (price left unchanged).
    """
    try:
        strategy = Strategy(strategy)
    except ValueError:
        pass

    thresholds = config.occupancy_thresholds
    adjustments = config.adjustments
    weighted = occupancy.weighted(config.occupancy_weights)
    weekly = weekly_increase(stats, price_type, as_of)

    oscillation_direction: float | None = None

    if strategy == Strategy.INCREASE:
        percentage = adjustments.increase.percentage
        if occupancy.seven_day >= VERY_HIGH_SEVEN_DAY:
            percentage *= VERY_HIGH_MULTIPLIER
        elif occupancy.seven_day >= thresholds.high:
            percentage *= HIGH_MULTIPLIER
        percentage = cap_increase(percentage, weekly)

    elif strategy == Strategy.DECREASE:
        percentage = -adjustments.decrease.percentage
        if weighted < thresholds.critical:
            percentage *= CRITICAL_MULTIPLIER
        elif occupancy.seven_day < VERY_LOW_SEVEN_DAY and occupancy.thirty_day < thresholds.low:
            percentage *= VERY_LOW_MULTIPLIER

    elif strategy == Strategy.HOLD:
        if thresholds.low <= weighted <= thresholds.high:
            percentage = _oscillation(stats, adjustments.hold.oscillation_percentage, weekly, as_of)
            oscillation_direction = percentage
        elif weighted < thresholds.low:
            percentage = -adjustments.decrease.percentage * HOLD_OVERRIDE_MULTIPLIER
            logger.info("HOLD overridden for %s: low occupancy (%.1f%%)", property_id, weighted * 100)
        else:
            percentage = cap_increase(
                adjustments.increase.percentage * HOLD_OVERRIDE_MULTIPLIER, weekly
            )
            logger.info("HOLD overridden for %s: high occupancy (%.1f%%)", property_id, weighted * 100)

    else:
        logger.warning("No valid strategy for %s (%r), making no changes", property_id, strategy)
        return AdjustmentResult(
            property_id=property_id,
            price_type=price_type,
            strategy=strategy,
            current_price=current_price,
            new_price=current_price,
        )

    new_price = round_price(current_price + current_price * percentage / 100)
    logger.info(
        "%s %s price: %s -> %s (%+.1f%%, %s)",
        property_id, price_type.value, current_price, new_price, percentage, strategy.value,
    )

    floor_applied = False
    if price_type == PriceType.MIN and stats is not None:
        base_after = stats.latest_base_price()
        if base_after is not None:
            ceiling = round_price(base_after * MIN_TO_BASE_RATIO)
            if new_price > ceiling:
                logger.info(
                    "Capping %s min price to 80%% of base price %s: %s -> %s",
                    property_id, base_after, new_price, ceiling,
                )
                new_price = ceiling
                floor_applied = True

    record = AdjustmentRecord(
        date=as_of,
        strategy=strategy,
        percent_change=percentage,
        min_price_percent_change=percentage if price_type == PriceType.MIN else 0.0,
        base_price_percent_change=percentage if price_type == PriceType.BASE else 0.0,
    )
    return AdjustmentResult(
        property_id=property_id,
        price_type=price_type,
        strategy=strategy,
        current_price=current_price,
        new_price=new_price,
        percentage=percentage,
        record=record,
        oscillation_direction=oscillation_direction,
        floor_applied=floor_applied,
    )


def _oscillation(
    stats: PropertyStatistics | None,
    base_oscillation: float,
    weekly: float,
    as_of: date,
) -> float:
    """Small move opposite to the previous oscillation (upward the first time)."""
    last = stats.last_oscillation_direction if stats is not None else None
    direction = 1.0 if last is None or last <= 0 else -1.0

    magnitude = base_oscillation
    if is_weekend(as_of):
        magnitude *= WEEKEND_UP_MULTIPLIER if direction > 0 else WEEKEND_DOWN_MULTIPLIER

    percentage = direction * magnitude
    if percentage > 0 and weekly + percentage > HOLD_INCREASE_CAP:
        logger.info("HOLD oscillation changed to %.1f%%: near 7-day increase limit", CAPPED_NUDGE)
        return CAPPED_NUDGE
    return percentage


def apply_adjustment(stats: PropertyStatistics, result: AdjustmentResult) -> None:
    """Commit a computed adjustment to a property's statistics."""
    if result.record is None:
        return
    bisect.insort(stats.adjustment_history, result.record, key=lambda adj: adj.date)
    if result.oscillation_direction is not None:
        stats.last_oscillation_direction = result.oscillation_direction
    stats.price_history.append(PricePoint(
        date=result.record.date,
        price_type=result.price_type,
        before=result.current_price,
        after=result.new_price,
        committed=True,
    ))
    stats.touch(result.record.date)

