"""Occupancy normalization.

The pricing platform reports occupancy as "85%", "85", 0.85, "N/A" or
nothing at all. Everything is reduced to a decimal in [0, 1]. Missing
data counts as vacancy (0), never as unknown, so it drags weighted
averages down instead of being skipped.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..common.models import RawOccupancy
from .config import OccupancyWeights

_NUMERIC_TOKEN = re.compile(r"(\d+(\.\d+)?)%?")
_MISSING = ("", "N/A")

logger = logging.getLogger(__name__)


def normalize_occupancy(raw: Any) -> float:
    """Convert a raw occupancy value to a decimal in [0, 1].

    Values above 1 are read as percentages, anything else as a fraction.

    >>> normalize_occupancy("85%")
    0.85
    >>> normalize_occupancy("N/A")
    0.0
    """
    if raw is None or isinstance(raw, bool):
        return 0.0

    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.strip()
        if text.upper() in _MISSING:
            return 0.0
        match = _NUMERIC_TOKEN.search(text)
        if not match:
            return 0.0
        value = float(match.group(1))
    else:
        return 0.0

    if value != value or value < 0:  # NaN or negative
        return 0.0
    if value > 1:
        value = value / 100
    return min(value, 1.0)


@dataclass(frozen=True)
class OccupancyReading:
    """Normalized 7/30/60-day occupancy."""

    seven_day: float = 0.0
    thirty_day: float = 0.0
    sixty_day: float = 0.0

    @classmethod
    def from_raw(cls, raw: RawOccupancy | Mapping[str, Any] | None) -> OccupancyReading:
        """Build a reading from the collaborator's raw shape.

        Accepts a ``RawOccupancy`` or a mapping keyed ``7_day_occ``,
        ``30_day_occ`` and ``60_day_occ``. Any other shape reads as zero
        occupancy.
        """
        if raw is None:
            return cls()
        if isinstance(raw, Mapping):
            raw = RawOccupancy.model_validate(dict(raw))
        elif not isinstance(raw, RawOccupancy):
            logger.warning("Unrecognized occupancy %r, treating as vacant", raw)
            return cls()
        return cls(
            seven_day=normalize_occupancy(raw.seven_day),
            thirty_day=normalize_occupancy(raw.thirty_day),
            sixty_day=normalize_occupancy(raw.sixty_day),
        )

    def weighted(self, weights: OccupancyWeights) -> float:
        return (
            self.seven_day * weights.seven_day
            + self.thirty_day * weights.thirty_day
            + self.sixty_day * weights.sixty_day
        )


def as_reading(occupancy: OccupancyReading | RawOccupancy | Mapping[str, Any] | None) -> OccupancyReading:
    """Accept either an already-normalized reading or any raw shape."""
    if isinstance(occupancy, OccupancyReading):
        return occupancy
    return OccupancyReading.from_raw(occupancy)
