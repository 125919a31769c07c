"""
Adaptive pricing engine for short-term-rental listings.

Modules:
- occupancy: normalize raw occupancy values to [0, 1]
- history: load the change ledger and replay it into statistics
- trend: short-term occupancy momentum
- classifier: increase / decrease / hold decision
- calculator: bounded percentage adjustment and new price
- ledger: merge and persist the change ledger
- engine: per-run context tying the above together
"""

from .config import EngineConfig
from .engine import PricingEngine
from .occupancy import OccupancyReading, normalize_occupancy

__all__ = ["EngineConfig", "OccupancyReading", "PricingEngine", "normalize_occupancy"]
