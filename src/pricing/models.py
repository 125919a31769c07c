"""In-memory data models for the pricing engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ..common.models import PriceType, Strategy


@dataclass
class OccupancySnapshot:
    """Normalized occupancy observed on a given day."""

    date: date
    seven_day: float
    thirty_day: float
    sixty_day: float


@dataclass
class PricePoint:
    """Before/after pair for one price type on a given day."""

    date: date
    price_type: PriceType
    before: float
    after: float
    committed: bool = False  # True when added by the current run


@dataclass
class AdjustmentRecord:
    """One applied (or replayed) price adjustment, in percent."""

    date: date
    strategy: Strategy
    percent_change: float
    min_price_percent_change: float = 0.0
    base_price_percent_change: float = 0.0

    def change_for(self, price_type: PriceType) -> float:
        if price_type == PriceType.MIN:
            return self.min_price_percent_change
        return self.base_price_percent_change


@dataclass
class PropertyStatistics:
    """Everything the engine knows about one property's recent history.

    Rebuilt from the ledger on start-up and mutated in place while a run
    commits new adjustments. Never persisted directly.
    """

    property_id: str
    occupancy_history: list[OccupancySnapshot] = field(default_factory=list)
    price_history: list[PricePoint] = field(default_factory=list)
    adjustment_history: list[AdjustmentRecord] = field(default_factory=list)
    last_oscillation_direction: float | None = None
    last_update: date | None = None

    def touch(self, when: date) -> None:
        if self.last_update is None or when > self.last_update:
            self.last_update = when

    def latest_base_price(self) -> float | None:
        """Most recently recorded base price after-value, if any.

        Ties on date go to the later entry in ``price_history``, unless it
        came from the ledger, where the first entry of a date is the newest.
        """
        latest: PricePoint | None = None
        for point in self.price_history:
            if point.price_type != PriceType.BASE:
                continue
            if latest is None or point.date > latest.date or (
                point.date == latest.date and point.committed
            ):
                latest = point
        return latest.after if latest else None


@dataclass
class AdjustmentResult:
    """Outcome of a pure adjustment computation, not yet committed."""

    property_id: str
    price_type: PriceType
    strategy: Strategy | str
    current_price: float
    new_price: int | float
    percentage: float = 0.0
    record: AdjustmentRecord | None = None
    oscillation_direction: float | None = None
    floor_applied: bool = False

    @property
    def changed(self) -> bool:
        return self.record is not None
