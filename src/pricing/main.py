"""CLI entry point for a batch pricing run.

Reads a snapshot of current listing readings (produced by the browser
automation layer), runs every listing through the pricing engine and
persists the change ledger.

Usage:
    python -m src.pricing.main --input data/readings.json
    python -m src.pricing.main --input data/readings.json \\
        --config config/config.json --output data/results.json --as-of 2026-10-16
    python -m src.pricing.main --input data/readings.json --dry-run

Input shape:
    {"properties": [
        {"propertyId": "listing-123",
         "occupancy": {"7_day_occ": "85%", "30_day_occ": "70%", "60_day_occ": "N/A"},
         "basePrice": 150, "minPrice": 100}
    ]}
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from collections.abc import Mapping
from datetime import date
from pathlib import Path

from ..common.config import RunnerSettings, resolve_path
from ..common.logging import setup_logging
from ..common.models import PriceType
from .config import EngineConfig
from .engine import PricingEngine

logger = logging.getLogger(__name__)


def load_readings(path: str | Path) -> list[dict]:
    """Load listing readings; accepts ``{"properties": [...]}`` or a bare list."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("properties", [])
    if not isinstance(data, list):
        raise ValueError(f"Readings file {path} must contain a list of properties")
    return data


def price_listing(engine: PricingEngine, reading: dict, as_of: date) -> dict:
    """Adjust base then min price for one listing and return a result row.

    Base goes first so the min-price ceiling sees the new base price.
    Every field is validated before anything is committed, so a bad
    listing leaves no partial change behind.
    """
    property_id = reading.get("propertyId") or reading.get("url")
    if not property_id:
        raise ValueError("reading has no propertyId")

    occupancy = reading.get("occupancy") or {}
    if not isinstance(occupancy, Mapping):
        raise ValueError(f"occupancy must be an object, got {type(occupancy).__name__}")

    prices: list[tuple[PriceType, str, float]] = []
    for price_type, key in ((PriceType.BASE, "basePrice"), (PriceType.MIN, "minPrice")):
        value = reading.get(key)
        if value is None:
            logger.warning("%s: no %s reported, skipping", property_id, key)
            continue
        prices.append((price_type, key, _parse_price(key, value)))

    row: dict = {"propertyId": property_id}
    for price_type, key, current in prices:
        result = engine.compute(property_id, current, occupancy, price_type, as_of)
        engine.commit(result, occupancy)
        row[key] = {
            "before": current,
            "after": result.new_price,
            "percentChange": round(result.percentage, 2),
            "strategy": getattr(result.strategy, "value", result.strategy),
        }
    return row


def _parse_price(key: str, value: object) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{key} is not a number: {value!r}")
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key} is not a number: {value!r}") from None
    if not math.isfinite(price) or price < 0:
        raise ValueError(f"{key} must be a non-negative number, got {value!r}")
    return price


def run(
    engine: PricingEngine,
    readings: list[dict],
    as_of: date,
    *,
    save: bool = True,
) -> list[dict]:
    """Price every listing in order; one bad listing never stops the run."""
    results: list[dict] = []
    total = len(readings)
    try:
        for i, reading in enumerate(readings, start=1):
            if not isinstance(reading, dict):
                logger.warning("Skipping malformed reading #%d: %r", i, reading)
                results.append({"propertyId": f"#{i}", "error": "malformed reading"})
                continue
            property_id = reading.get("propertyId") or reading.get("url") or f"#{i}"
            logger.info("Processing property %d/%d: %s", i, total, property_id)
            try:
                results.append(price_listing(engine, reading, as_of))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Failed to price %s: %s", property_id, e)
                engine.record_error(property_id, str(e), as_of, reading.get("occupancy"))
                results.append({"propertyId": property_id, "error": str(e)})
    except KeyboardInterrupt:
        logger.error("Run interrupted after %d/%d properties", len(results), total)
        if save:
            engine.save_partial(as_of)
        raise

    if save:
        engine.save_changes(as_of)
    return results


def main() -> None:
    settings = RunnerSettings.from_env()

    parser = argparse.ArgumentParser(description="Listing pricing engine: batch run")
    parser.add_argument("--input", type=str, required=True, help="Listing readings JSON")
    parser.add_argument(
        "--config",
        type=str,
        default=str(settings.config_path),
        help="Engine config (JSON or YAML); defaults to $PRICING_CONFIG or config/config.json",
    )
    parser.add_argument("--output", type=str, help="Write per-listing results JSON here")
    parser.add_argument("--ledger", type=str, help="Override the ledger path from the config")
    parser.add_argument("--as-of", type=date.fromisoformat, default=None, help="Run date (YYYY-MM-DD)")
    parser.add_argument("--dry-run", action="store_true", help="Compute prices but do not save the ledger")
    parser.add_argument("--log-level", type=str, default=settings.log_level)

    args = parser.parse_args()
    setup_logging(args.log_level)

    as_of = args.as_of or date.today()

    try:
        config = EngineConfig.load(resolve_path(args.config))
        readings = load_readings(args.input)
    except (OSError, ValueError) as e:
        logger.error("Cannot start run: %s", e)
        sys.exit(1)

    ledger_path = resolve_path(args.ledger) if args.ledger else (
        resolve_path(config.log_file) if config.log_file else None
    )
    engine = PricingEngine.from_ledger(config, ledger_path)

    logger.info("=== Pricing run %s: %d properties ===", as_of.isoformat(), len(readings))
    results = run(engine, readings, as_of, save=not args.dry_run)

    changed = sum(1 for row in results if "error" not in row)
    logger.info("Priced %d properties, %d failed", changed, len(results) - changed)

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(
                {"asOf": as_of.isoformat(), "results": results},
                f, ensure_ascii=False, indent=2, default=str,
            )
        logger.info("Results written to %s", output_path)


if __name__ == "__main__":
    main()
