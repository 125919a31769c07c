"""Adaptive pricing engine.

Owns per-property statistics and the current run's change buffer. One
instance per run; nothing here is process-global.

Usage:
    config = EngineConfig.load("config/config.json")
    engine = PricingEngine.from_ledger(config)
    new_base = engine.adjust_price(listing_id, 150, occupancy, PriceType.BASE, as_of=today)
    new_min = engine.adjust_price(listing_id, 100, occupancy, PriceType.MIN, as_of=today)
    engine.save_changes(as_of=today)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any

from ..common.models import ChangeRecord, PriceType, RawOccupancy, Strategy
from .calculator import apply_adjustment, compute_adjustment
from .classifier import classify_strategy
from .config import EngineConfig
from .history import build_statistics, load_change_records
from .ledger import LedgerWriter
from .models import AdjustmentResult, PropertyStatistics
from .occupancy import OccupancyReading, as_reading

logger = logging.getLogger(__name__)

OccupancyInput = OccupancyReading | RawOccupancy | Mapping[str, Any] | None


class PricingEngine:
    """Per-run pricing context: statistics in, price decisions and ledger out."""

    def __init__(
        self,
        config: EngineConfig,
        statistics: dict[str, PropertyStatistics] | None = None,
        ledger_path: str | Path | None = None,
    ) -> None:
        self.config = config
        self._statistics: dict[str, PropertyStatistics] = statistics or {}
        self._changes: list[ChangeRecord] = []
        self.ledger_path = Path(ledger_path) if ledger_path else config.log_file

    @classmethod
    def from_ledger(
        cls,
        config: EngineConfig,
        path: str | Path | None = None,
    ) -> PricingEngine:
        """Build an engine by replaying the ledger at ``path`` (default ``config.log_file``)."""
        ledger_path = Path(path) if path else config.log_file
        records = load_change_records(ledger_path)
        return cls(config, build_statistics(records), ledger_path=ledger_path)

    # --- state ---

    @property
    def properties(self) -> list[str]:
        return list(self._statistics)

    @property
    def pending_changes(self) -> list[ChangeRecord]:
        """Changes recorded in this run and not yet persisted (a copy)."""
        return list(self._changes)

    def statistics_for(self, property_id: str) -> PropertyStatistics | None:
        return self._statistics.get(property_id)

    # --- decisions ---

    def classify(
        self,
        property_id: str,
        occupancy: OccupancyInput,
        as_of: date,
    ) -> Strategy | str:
        return classify_strategy(
            property_id,
            as_reading(occupancy),
            self.config,
            self._statistics.get(property_id),
            as_of,
        )

    def compute(
        self,
        property_id: str,
        current_price: float,
        occupancy: OccupancyInput,
        price_type: PriceType,
        as_of: date,
        strategy: Strategy | str | None = None,
    ) -> AdjustmentResult:
        """Compute an adjustment without committing it.

        The strategy is classified from history when not given.
        """
        reading = as_reading(occupancy)
        if strategy is None:
            strategy = self.classify(property_id, reading, as_of)
        return compute_adjustment(
            property_id,
            current_price,
            reading,
            PriceType(price_type),
            strategy,
            self.config,
            self._statistics.get(property_id),
            as_of,
        )

    def commit(
        self,
        result: AdjustmentResult,
        occupancy: OccupancyInput = None,
    ) -> None:
        """Apply a computed adjustment and record it in the run's changes.

        Results without a record (unknown strategy) are ignored.
        """
        if result.record is None:
            return

        stats = self._statistics.get(result.property_id)
        if stats is None:
            stats = PropertyStatistics(property_id=result.property_id)
            self._statistics[result.property_id] = stats
        apply_adjustment(stats, result)

        change = self._change_for(result.property_id)
        if change is None:
            change = ChangeRecord(
                property_id=result.property_id,
                date=result.record.date,
                occupancy=_raw_occupancy(occupancy),
            )
            self._changes.append(change)
        change.set_price_change(result.price_type, result.current_price, result.new_price)

    def adjust_price(
        self,
        property_id: str,
        current_price: float,
        occupancy: OccupancyInput,
        price_type: PriceType,
        as_of: date,
    ) -> int | float:
        """Classify, compute and commit in one call; returns the new price."""
        result = self.compute(property_id, current_price, occupancy, price_type, as_of)
        self.commit(result, occupancy)
        return result.new_price

    def record_error(
        self,
        property_id: str,
        message: str,
        as_of: date,
        occupancy: OccupancyInput = None,
    ) -> ChangeRecord:
        """Record a failed property in the run's changes (skipped on replay)."""
        change = ChangeRecord(
            property_id=property_id,
            date=as_of,
            occupancy=_raw_occupancy(occupancy),
            error=message,
        )
        self._changes.append(change)
        return change

    # --- persistence ---

    def save_changes(self, as_of: date, path: str | Path | None = None) -> bool:
        """Persist the run's changes; the buffer is cleared only on success."""
        target = Path(path) if path else self.ledger_path
        if target is None:
            logger.error("Cannot save changes: no ledger file configured")
            return False
        saved = LedgerWriter(target).persist(self._changes, as_of)
        if saved:
            self._changes.clear()
        return saved

    def save_partial(self, as_of: date, path: str | Path | None = None) -> Path | None:
        target = Path(path) if path else self.ledger_path
        if target is None:
            return None
        return LedgerWriter(target).write_partial(self._changes, as_of)

    def _change_for(self, property_id: str) -> ChangeRecord | None:
        for change in self._changes:
            if change.property_id == property_id and change.error is None:
                return change
        return None


def _raw_occupancy(occupancy: OccupancyInput) -> RawOccupancy | None:
    if occupancy is None:
        return None
    if isinstance(occupancy, RawOccupancy):
        return occupancy
    if isinstance(occupancy, OccupancyReading):
        return RawOccupancy(
            seven_day=occupancy.seven_day,
            thirty_day=occupancy.thirty_day,
            sixty_day=occupancy.sixty_day,
        )
    if isinstance(occupancy, Mapping):
        return RawOccupancy.model_validate(dict(occupancy))
    logger.warning("Dropping unrecognized occupancy %r from change record", occupancy)
    return None
