"""Short-term occupancy momentum."""

from __future__ import annotations

from .models import OccupancySnapshot


def occupancy_trend(occupancy_history: list[OccupancySnapshot]) -> float:
    """Change in 7-day occupancy between the two latest readings, in points.

    History may be in any order (the ledger stores newest first), so it is
    sorted by date here. Fewer than two readings means no trend: 0.
    """
    if not occupancy_history or len(occupancy_history) < 2:
        return 0.0

    ordered = sorted(occupancy_history, key=lambda snap: snap.date, reverse=True)
    most_recent = ordered[0].seven_day
    previous = ordered[1].seven_day

    if most_recent is None or previous is None:
        return 0.0

    return (most_recent - previous) * 100
