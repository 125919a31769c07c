"""Shared Pydantic data models for the listing pricing engine.

These models define the on-disk change ledger: the only state that
survives between runs. Every reader and writer of the ledger imports
from here.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# === Enums ===

class Strategy(str, Enum):
    """Categorical pricing decision for a property."""
    INCREASE = "increase"
    DECREASE = "decrease"
    HOLD = "hold"


class PriceType(str, Enum):
    """Which of a listing's two prices is being adjusted."""
    MIN = "min"
    BASE = "base"


# === Ledger ===

class RawOccupancy(BaseModel):
    """Occupancy exactly as the collaborator reported it.

    Values may be numbers, percentage strings ("85%"), "N/A" or null.
    They are kept verbatim and only normalized when read by the engine.
    """
    seven_day: Any = Field(default=None, alias="7_day_occ")
    thirty_day: Any = Field(default=None, alias="30_day_occ")
    sixty_day: Any = Field(default=None, alias="60_day_occ")

    model_config = ConfigDict(populate_by_name=True)


class PriceChange(BaseModel):
    """Before/after pair for one price type."""
    before: int | float
    after: int | float


class ChangeRecord(BaseModel):
    """One persisted price change for a property on a given day."""
    property_id: str = Field(
        validation_alias=AliasChoices("propertyId", "property_id", "url"),
        serialization_alias="propertyId",
    )
    date: date
    occupancy: RawOccupancy | None = None
    min_price: PriceChange | None = Field(
        default=None,
        validation_alias=AliasChoices("minPrice", "min_price"),
        serialization_alias="minPrice",
    )
    base_price: PriceChange | None = Field(
        default=None,
        validation_alias=AliasChoices("basePrice", "base_price"),
        serialization_alias="basePrice",
    )
    error: str | None = None

    model_config = ConfigDict(populate_by_name=True)

    def price_change(self, price_type: PriceType) -> PriceChange | None:
        return self.min_price if price_type == PriceType.MIN else self.base_price

    def set_price_change(self, price_type: PriceType, before: float, after: float) -> None:
        change = PriceChange(before=before, after=after)
        if price_type == PriceType.MIN:
            self.min_price = change
        else:
            self.base_price = change

    def to_dict(self) -> dict:
        """Serialize with camelCase keys, omitting absent optional sections."""
        data = self.model_dump(mode="json", by_alias=True)
        for key in ("occupancy", "minPrice", "basePrice", "error"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class Ledger(BaseModel):
    """Canonical in-memory shape of the change ledger (most-recent-first)."""
    last_run: date | None = Field(
        default=None,
        validation_alias=AliasChoices("lastRun", "last_run"),
        serialization_alias="lastRun",
    )
    changes: list[ChangeRecord] = []

    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict:
        return {
            "lastRun": self.last_run.isoformat() if self.last_run else None,
            "changes": [change.to_dict() for change in self.changes],
        }
