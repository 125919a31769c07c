"""Change ledger ingestion.

Reads the persisted ledger (current or legacy on-disk shape), decodes it
once into the canonical ``Ledger`` model and replays it into per-property
``PropertyStatistics``.

Ledger shapes accepted:
    {"lastRun": "2026-10-15", "changes": [...]}      # current
    [{"lastRun": ..., "changes": [...]}, ...]        # legacy, one object per run

Anything missing or unreadable yields an empty ledger; nothing here raises.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..common.models import ChangeRecord, Ledger, PriceType, Strategy
from .models import AdjustmentRecord, OccupancySnapshot, PricePoint, PropertyStatistics
from .occupancy import OccupancyReading

logger = logging.getLogger(__name__)

# Percent move either way before a replayed change counts as increase/decrease
STRATEGY_INFERENCE_THRESHOLD = 0.5


def decode_ledger(data: Any) -> Ledger:
    """Decode parsed ledger JSON into the canonical shape.

    An array of runs is flattened by concatenating every run's changes in
    array order; ``lastRun`` comes from the first run.
    """
    if isinstance(data, dict):
        runs = [data]
    elif isinstance(data, list):
        runs = [run for run in data if isinstance(run, dict)]
        if len(runs) != len(data):
            logger.warning("Ignoring %d non-object entries in ledger", len(data) - len(runs))
    else:
        logger.warning("Unrecognized ledger shape (%s), treating as empty", type(data).__name__)
        return Ledger()

    last_run: date | None = None
    changes: list[ChangeRecord] = []
    for run in runs:
        if last_run is None:
            last_run = _parse_date(run.get("lastRun") or run.get("last_run"))
        raw_changes = run.get("changes")
        if not isinstance(raw_changes, list):
            continue
        for raw in raw_changes:
            try:
                changes.append(ChangeRecord.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping malformed ledger entry: %s", e.errors()[0].get("msg", e))

    if len(runs) > 1:
        logger.info("Flattened %d ledger runs into %d changes", len(runs), len(changes))
    return Ledger(last_run=last_run, changes=changes)


def load_ledger(path: str | Path | None) -> Ledger:
    """Load the ledger at ``path``; missing or unreadable files give an empty ledger."""
    if path is None:
        return Ledger()
    path = Path(path)
    if not path.exists():
        logger.info("No ledger at %s yet, starting with empty history", path)
        return Ledger()
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error("Error loading ledger %s: %s", path, e)
        return Ledger()

    ledger = decode_ledger(data)
    logger.info("Loaded %d historical changes from %s", len(ledger.changes), path)
    return ledger


def load_change_records(path: str | Path | None) -> list[ChangeRecord]:
    """Flat list of change records in ledger (most-recent-first) order."""
    return load_ledger(path).changes


def build_statistics(records: list[ChangeRecord]) -> dict[str, PropertyStatistics]:
    """Replay ledger records into per-property statistics.

    Records are consumed in ledger order, so occupancy and price histories
    end up most-recent-first. Adjustment history is re-ordered
    chronologically at the end.
    """
    stats_by_property: dict[str, PropertyStatistics] = {}

    for record in records:
        if record.error:
            continue

        stats = stats_by_property.get(record.property_id)
        if stats is None:
            stats = PropertyStatistics(property_id=record.property_id)
            stats_by_property[record.property_id] = stats

        if record.occupancy is not None:
            reading = OccupancyReading.from_raw(record.occupancy)
            stats.occupancy_history.append(OccupancySnapshot(
                date=record.date,
                seven_day=reading.seven_day,
                thirty_day=reading.thirty_day,
                sixty_day=reading.sixty_day,
            ))

        for price_type in (PriceType.MIN, PriceType.BASE):
            change = record.price_change(price_type)
            if change is not None:
                stats.price_history.append(PricePoint(
                    date=record.date,
                    price_type=price_type,
                    before=change.before,
                    after=change.after,
                ))

        adjustment = _infer_adjustment(record)
        if adjustment is not None:
            stats.adjustment_history.append(adjustment)

        stats.touch(record.date)

    for stats in stats_by_property.values():
        # Ledger is newest-first; reverse before the stable sort so that
        # same-day entries keep their original chronological order.
        stats.adjustment_history.reverse()
        stats.adjustment_history.sort(key=lambda adj: adj.date)

    logger.info("Analyzed history for %d properties", len(stats_by_property))
    return stats_by_property


def _infer_adjustment(record: ChangeRecord) -> AdjustmentRecord | None:
    """Derive the adjustment a ledger record represents, if it has prices."""
    min_change = _percent_change(record, PriceType.MIN)
    base_change = _percent_change(record, PriceType.BASE)
    if min_change is None and base_change is None:
        return None

    min_pct = min_change or 0.0
    base_pct = base_change or 0.0

    if min_pct > STRATEGY_INFERENCE_THRESHOLD or base_pct > STRATEGY_INFERENCE_THRESHOLD:
        strategy = Strategy.INCREASE
    elif min_pct < -STRATEGY_INFERENCE_THRESHOLD or base_pct < -STRATEGY_INFERENCE_THRESHOLD:
        strategy = Strategy.DECREASE
    else:
        strategy = Strategy.HOLD

    return AdjustmentRecord(
        date=record.date,
        strategy=strategy,
        percent_change=base_pct if base_change is not None else min_pct,
        min_price_percent_change=min_pct,
        base_price_percent_change=base_pct,
    )


def _percent_change(record: ChangeRecord, price_type: PriceType) -> float | None:
    change = record.price_change(price_type)
    if change is None or change.before <= 0:
        return None
    return (change.after - change.before) / change.before * 100


def _parse_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None
