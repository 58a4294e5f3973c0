"""
Data models for storage layer.

Defines the daily usage record and the persisted history aggregate.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union


DateLike = Union[str, date, datetime]


@dataclass(frozen=True)
class DailyUsageRecord:
    """One calendar day's measured usage.

    The date is the unique key of a record inside a history. Records built
    by ingestion always carry the canonical ``YYYY-MM-DD`` form; records
    handed to the merger directly may carry any date representation and are
    canonicalized there.
    """
    date: DateLike
    cost: float
    tokens: int = 0
    extra: Dict[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        """Validate usage values are finite and non-negative."""
        if not math.isfinite(self.cost):
            raise ValueError("cost must be a finite number")
        if not math.isfinite(self.tokens):
            raise ValueError("tokens must be a finite number")
        if self.cost < 0:
            raise ValueError("cost cannot be negative")
        if self.tokens < 0:
            raise ValueError("tokens cannot be negative")


@dataclass(frozen=True)
class UsageHistory:
    """Persisted aggregate of daily usage records.

    Mutated only by producing a new instance through the merger.
    """
    records: Dict[str, DailyUsageRecord] = field(hash=False)
    last_updated: Optional[datetime] = None

    @classmethod
    def empty(cls) -> "UsageHistory":
        """History used when no prior persisted state exists."""
        return cls(records={}, last_updated=None)

    @property
    def daily(self) -> List[DailyUsageRecord]:
        """Records in ascending date order."""
        return [self.records[key] for key in sorted(self.records)]

    def __len__(self) -> int:
        return len(self.records)
