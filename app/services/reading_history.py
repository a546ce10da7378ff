"""Per-meter reading history used to compare submissions with prior readings."""

import logging
from collections import defaultdict
from datetime import date
from typing import Any

from pydantic import ValidationError

from app.schemas.review import PreviousReading
from app.schemas.submission import CanonicalReadingRow

logger = logging.getLogger(__name__)


class ReadingHistoryIndex:
    """Canonical readings grouped by meter, newest first.

    Built wholesale from the backend listing; never patched in place.
    """

    def __init__(self, entries: dict[str, list[PreviousReading]] | None = None) -> None:
        self._by_meter: dict[str, list[PreviousReading]] = entries or {}

    @classmethod
    def from_rows(cls, rows: list[Any]) -> "ReadingHistoryIndex":
        """Build the index from raw reading rows, skipping unusable rows."""
        grouped: dict[str, list[PreviousReading]] = defaultdict(list)
        skipped = 0
        for row in rows:
            try:
                reading = CanonicalReadingRow.model_validate(row)
            except ValidationError:
                skipped += 1
                continue
            if not reading.reading_value.is_finite():
                skipped += 1
                continue
            grouped[reading.meter_id].append(
                PreviousReading(
                    meter_id=reading.meter_id,
                    value=reading.reading_value,
                    reading_date=reading.lastread_date,
                )
            )

        if skipped:
            logger.debug("Skipped %d unusable reading rows", skipped)

        for entries in grouped.values():
            entries.sort(key=lambda e: e.reading_date, reverse=True)
        return cls(dict(grouped))

    def history_for(self, meter_id: str) -> list[PreviousReading]:
        """All readings for a meter, newest first."""
        return list(self._by_meter.get(meter_id, []))

    def previous_reading(self, meter_id: str, cutoff: date) -> PreviousReading | None:
        """The latest reading strictly before cutoff.

        When the meter has readings but none before cutoff, the most recent
        reading is returned regardless of its date. Returns None only when the
        meter has no readings at all.
        """
        entries = self._by_meter.get(meter_id)
        if not entries:
            return None
        for entry in entries:
            if entry.reading_date < cutoff:
                return entry
        return entries[0]

    @property
    def meter_count(self) -> int:
        """Number of meters with at least one reading."""
        return len(self._by_meter)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._by_meter.values())
