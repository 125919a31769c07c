# Common utilities and shared modules
"""
Shared components used by the pricing engine and its runner:
- Ledger data models (Pydantic schemas)
- Logging configuration
- Project configuration
"""

from .config import PROJECT_ROOT, CONFIG_DIR, DATA_DIR, RunnerSettings
from .models import ChangeRecord, Ledger, PriceType, Strategy
