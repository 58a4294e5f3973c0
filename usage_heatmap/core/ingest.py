"""
Ingestion of raw usage payloads.

Converts the ``daily`` entries reported by a usage source into
DailyUsageRecord objects, normalizing the source's cost and token field
names at the boundary.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from usage_heatmap.config.loader import SourceConfig
from usage_heatmap.storage.models import DailyUsageRecord

from .dates import canonical_date

logger = logging.getLogger(__name__)

# Field names records are persisted under
COST_FIELD = "totalCost"
TOKENS_FIELD = "totalTokens"


@dataclass(frozen=True)
class IngestResult:
    """Records accepted from a payload and the number dropped as malformed."""
    records: List[DailyUsageRecord] = field(default_factory=list, hash=False)
    dropped: int = 0


def record_from_raw(
    entry: Mapping[str, Any],
    source: Optional[SourceConfig] = None
) -> Optional[DailyUsageRecord]:
    """Build a record from one raw daily entry.

    The first cost field present in the entry wins. A missing cost or token
    count is read as zero.

    Args:
        entry: Raw daily entry as decoded from JSON
        source: Field names the source uses; defaults to the built-in names

    Returns:
        DailyUsageRecord with a canonical date, or None if the entry is malformed
    """
    source = source or SourceConfig()
    if not isinstance(entry, Mapping):
        return None

    key = canonical_date(entry.get("date"))
    if key is None:
        return None

    cost = _first_number(entry, source.cost_fields)
    tokens = _first_number(entry, source.token_fields)
    if cost is None or tokens is None:
        return None

    consumed = {"date"} | set(source.cost_fields) | set(source.token_fields)
    extra = {name: value for name, value in entry.items() if name not in consumed}

    try:
        return DailyUsageRecord(date=key, cost=float(cost), tokens=int(tokens), extra=extra)
    except ValueError:
        return None


def records_from_payload(
    payload: Any,
    source: Optional[SourceConfig] = None
) -> IngestResult:
    """Convert a ``{"daily": [...]}`` payload into records.

    Malformed entries are skipped and counted; a payload with no ``daily``
    list yields no records.

    Args:
        payload: Decoded JSON payload from a usage source or the history file
        source: Field names the source uses

    Returns:
        IngestResult with accepted records in payload order
    """
    daily = payload.get("daily") if isinstance(payload, Mapping) else None
    if not isinstance(daily, list):
        return IngestResult()

    records = []
    dropped = 0
    for entry in daily:
        record = record_from_raw(entry, source)
        if record is None:
            dropped += 1
            continue
        records.append(record)

    if dropped:
        logger.debug("Dropped %d malformed daily entries", dropped)
    return IngestResult(records=records, dropped=dropped)


def record_to_raw(record: DailyUsageRecord) -> Dict[str, Any]:
    """Serialize a record under the persisted field names."""
    raw: Dict[str, Any] = {
        "date": record.date,
        COST_FIELD: record.cost,
        TOKENS_FIELD: record.tokens,
    }
    for name, value in record.extra.items():
        raw.setdefault(name, value)
    return raw


def _first_number(entry: Mapping[str, Any], names) -> Optional[float]:
    """Return the first present numeric field, 0 if none, None if invalid."""
    for name in names:
        if name not in entry or entry[name] is None:
            continue
        value = entry[name]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value):
            return None
        return value
    return 0
