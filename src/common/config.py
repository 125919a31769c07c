"""Project configuration and paths.

Loads runner settings from environment variables (and the project ``.env``).
The pricing engine itself never reads the environment; it receives an
``EngineConfig`` from whoever builds it.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# === Paths ===
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
DATA_DIR = PROJECT_ROOT / "data"

# Load .env from project root
load_dotenv(PROJECT_ROOT / ".env")


class RunnerSettings(BaseModel):
    """Settings for the batch pricing runner."""
    config_path: Path = Field(default_factory=lambda: CONFIG_DIR / "config.json")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> RunnerSettings:
        """Create settings from ``PRICING_*`` environment variables."""
        data: dict = {}
        if config_path := os.getenv("PRICING_CONFIG"):
            data["config_path"] = Path(config_path)
        if log_level := os.getenv("PRICING_LOG_LEVEL"):
            data["log_level"] = log_level
        return cls(**data)


def resolve_path(path: str | Path) -> Path:
    """Resolve a path relative to the project root."""
    p = Path(path)
    if p.is_absolute():
        return p
    return PROJECT_ROOT / p
