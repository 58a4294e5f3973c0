"""
History merging.

Reconciles a persisted usage history with a freshly fetched batch of daily
records. Re-fetching an overlapping range (e.g. "last 30 days" every run)
is the normal case, so a fresh record always replaces the stored one for
the same day, letting later fetches correct earlier values.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from usage_heatmap.storage.models import DailyUsageRecord, UsageHistory

from .dates import canonical_date

logger = logging.getLogger(__name__)


def merge_history(
    existing: UsageHistory,
    fresh: Iterable[DailyUsageRecord],
    now: Optional[datetime] = None
) -> UsageHistory:
    """Merge fresh daily records into an existing history.

    Existing records seed the result, then every fresh record is overlaid by
    canonical date (last one wins within the batch). Records whose date
    cannot be canonicalized are excluded. The input history is not modified.

    Args:
        existing: Previously persisted history
        fresh: Newly fetched records, possibly overlapping ``existing``
        now: Merge timestamp; defaults to the current UTC time

    Returns:
        New UsageHistory sorted ascending by date with ``last_updated`` set
    """
    merged: Dict[str, DailyUsageRecord] = {}
    excluded = 0

    # Order matters: fresh records must overwrite existing ones
    for record in list(existing.records.values()) + list(fresh):
        key = canonical_date(record.date)
        if key is None:
            excluded += 1
            continue
        merged[key] = record if record.date == key else replace(record, date=key)

    if excluded:
        logger.debug("Excluded %d records with unparseable dates", excluded)

    return UsageHistory(
        records={key: merged[key] for key in sorted(merged)},
        last_updated=now or datetime.now(timezone.utc)
    )
