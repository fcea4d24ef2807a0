"""SequenceCounter data model for yearly document numbering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional


@dataclass
class SequenceCounter:
    """Last issued running number per calendar year for one sequence.

    Counts only move forward: one allocation consumes exactly one increment.

    Attributes:
        counter_id: Id of the counter document (e.g. "quoteNumberGenerator")
        yearly_counts: Mapping year -> last issued number
    """

    counter_id: str
    yearly_counts: Dict[int, int] = field(default_factory=dict)

    def __post_init__(self):
        for year, count in self.yearly_counts.items():
            if count < 0:
                raise ValueError(f"Counter {self.counter_id}: count for {year} must be >= 0, got {count}")

    @classmethod
    def from_dict(cls, counter_id: str, data: Optional[Mapping[str, Any]]) -> 'SequenceCounter':
        """Create SequenceCounter from a stored counter document (or None if missing).

        Year keys are stored as strings; they are read back as ints.
        """
        counts: Dict[int, int] = {}
        raw = (data or {}).get("yearlyCounts") or {}
        for year, count in raw.items():
            counts[int(year)] = int(count or 0)
        return cls(counter_id=counter_id, yearly_counts=counts)

    def count_for(self, year: int) -> int:
        return self.yearly_counts.get(int(year), 0)

    def next_count(self, year: int) -> int:
        """Running number the next allocation in ``year`` will receive."""
        return self.count_for(year) + 1

    def advance(self, year: int) -> int:
        """Consume one number for ``year`` and return it."""
        new_count = self.next_count(year)
        self.yearly_counts[int(year)] = new_count
        return new_count

    def to_dict(self) -> Dict[str, Any]:
        return {"yearlyCounts": {str(y): c for y, c in sorted(self.yearly_counts.items())}}
