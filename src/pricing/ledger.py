"""Change ledger writer.

Merges a run's changes into the persisted ledger, newest first, and
keeps at most ``max_entries`` changes. Writes go through a temporary
file and an atomic rename. If that fails, the run's changes are written
to a dated backup next to the ledger so they are not lost.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import date
from pathlib import Path

from ..common.models import ChangeRecord, Ledger
from .history import load_ledger

logger = logging.getLogger(__name__)

MAX_LEDGER_ENTRIES = 1000


class LedgerWriter:
    """Persist change records to a JSON ledger file.

    Usage:
        writer = LedgerWriter("data/price_changes.json")
        if writer.persist(engine.pending_changes, as_of=date.today()):
            ...
    """

    def __init__(self, path: str | Path, max_entries: int = MAX_LEDGER_ENTRIES) -> None:
        self.path = Path(path)
        self.max_entries = max_entries

    @property
    def partial_path(self) -> Path:
        return self.path.with_name(f"{self.path.name}.partial")

    def backup_path(self, as_of: date) -> Path:
        return self.path.with_name(f"{self.path.name}.backup-{as_of.isoformat()}")

    def merge(self, changes: list[ChangeRecord], as_of: date) -> Ledger:
        """Build the ledger that ``persist`` would write, without writing it.

        Legacy array-of-runs files are flattened across every run (not just
        the first) before the new changes are prepended.
        """
        existing = load_ledger(self.path)
        merged = list(changes) + existing.changes
        if len(merged) > self.max_entries:
            logger.info(
                "Trimming ledger from %d to %d entries", len(merged), self.max_entries
            )
            merged = merged[: self.max_entries]
        return Ledger(last_run=as_of, changes=merged)

    def persist(self, changes: list[ChangeRecord], as_of: date) -> bool:
        """Merge ``changes`` into the ledger and write it.

        Returns:
            True if the ledger was written (or there was nothing to write),
            False if the write failed and only a backup could be attempted.
        """
        if not changes:
            logger.info("No changes to save")
            return True

        logger.info("Saving %d changes to %s", len(changes), self.path)
        ledger = self.merge(changes, as_of)

        try:
            self._write_atomic(self.path, ledger.to_dict())
        except (OSError, TypeError, ValueError):
            logger.exception("Error saving changes to %s", self.path)
            self._write_backup(changes, as_of)
            return False

        logger.info(
            "Added %d new entries to %s (total %d)",
            len(changes), self.path, len(ledger.changes),
        )
        return True

    def write_partial(self, changes: list[ChangeRecord], as_of: date) -> Path | None:
        """Write the changes gathered so far after an aborted run."""
        if not changes:
            return None
        ledger = Ledger(last_run=as_of, changes=list(changes))
        try:
            self._write_atomic(self.partial_path, ledger.to_dict())
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to save partial results to %s", self.partial_path)
            return None
        logger.info("Partial results saved to %s", self.partial_path)
        return self.partial_path

    def _write_backup(self, changes: list[ChangeRecord], as_of: date) -> Path | None:
        backup = self.backup_path(as_of)
        ledger = Ledger(last_run=as_of, changes=list(changes))
        try:
            with open(backup, "w", encoding="utf-8") as f:
                json.dump(ledger.to_dict(), f, ensure_ascii=False, indent=2)
        except OSError:
            logger.exception("Failed to write backup %s", backup)
            return None
        logger.warning("Saved backup of %d new changes to %s", len(changes), backup)
        return backup

    @staticmethod
    def _write_atomic(path: Path, data: dict) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
