"""
Calendar heatmap layout.

Maps the trailing weeks ending at ``as_of`` onto a 7-row week grid
(row 0 = Sunday) and assigns each day a color bucket relative to the
window's busiest day.

Bucket Thresholds (intensity = cost / max_cost):
0. empty    - no cost recorded
1. < 0.25
2. < 0.50
3. < 0.75
4. >= 0.75
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional

from usage_heatmap.config.loader import GridConfig
from usage_heatmap.storage.models import DailyUsageRecord, UsageHistory

from .aggregate import WindowStats, compute_window_stats, format_cost, format_tokens
from .dates import canonical_date, sunday_weekday

DAYS_PER_WEEK = 7
EMPTY_BUCKET = 0
TOP_BUCKET = 4
BUCKET_THRESHOLDS = (0.25, 0.50, 0.75)

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


@dataclass(frozen=True)
class HeatmapCell:
    """One rendered day of the grid."""
    date: str
    column: int
    row: int
    cost: float
    tokens: int
    bucket: int

    @property
    def tooltip(self) -> str:
        """Hover text: date, cost and, when known, token count."""
        text = f"{self.date}: {format_cost(self.cost)}"
        if self.tokens > 0:
            text += f" ({format_tokens(self.tokens)} tokens)"
        return text


@dataclass(frozen=True)
class MonthLabel:
    """Month name placed above a grid column."""
    column: int
    text: str


@dataclass(frozen=True)
class HeatmapLayout:
    """Complete grid layout plus the window summary."""
    as_of: date
    grid_start: date
    weeks: int
    cells: List[HeatmapCell] = field(hash=False)
    month_labels: List[MonthLabel] = field(hash=False)
    stats: WindowStats


def color_bucket(cost: Optional[float], max_cost: float) -> int:
    """Assign a day's cost to one of the five color buckets.

    Args:
        cost: The day's cost; None or 0 means no usage
        max_cost: Largest single-day cost of the window (> 0)

    Returns:
        0 for empty, otherwise 1-4 in increasing intensity
    """
    if not cost or cost <= 0:
        return EMPTY_BUCKET
    intensity = cost / max_cost
    for bucket, threshold in enumerate(BUCKET_THRESHOLDS, start=1):
        if intensity < threshold:
            return bucket
    return TOP_BUCKET


def grid_start_for(as_of: date, weeks: int) -> date:
    """Top-left date of the grid: the Sunday ``weeks - 1`` weeks before ``as_of``'s week."""
    return as_of - timedelta(days=(weeks - 1) * DAYS_PER_WEEK + sunday_weekday(as_of))


def build_heatmap(
    history: UsageHistory,
    as_of: date,
    grid: Optional[GridConfig] = None
) -> HeatmapLayout:
    """Lay out a history as a week-by-weekday grid.

    Column ``w``, row ``d`` represents ``grid_start + 7w + d``; days after
    ``as_of`` are not laid out, so the last column may be partial. Month
    labels mark the first column of each new month, except on the last
    column.

    Args:
        history: Usage history to lay out
        as_of: Last day shown; always falls in the last column
        grid: Grid geometry and window; defaults to 53 weeks / 366 days

    Returns:
        HeatmapLayout with cells in column-major order
    """
    grid = grid or GridConfig()
    stats = compute_window_stats(
        history,
        as_of,
        window_days=grid.window_days,
        fallback_max_cost=grid.fallback_max_cost
    )
    by_date = _index_by_date(history)
    grid_start = grid_start_for(as_of, grid.weeks)

    cells = []
    month_labels = []
    current_month = None
    for column in range(grid.weeks):
        week_start = grid_start + timedelta(days=column * DAYS_PER_WEEK)
        if week_start.month != current_month and column < grid.weeks - 1:
            current_month = week_start.month
            month_labels.append(MonthLabel(column=column, text=MONTH_NAMES[current_month - 1]))

        for row in range(DAYS_PER_WEEK):
            day = week_start + timedelta(days=row)
            if day > as_of:
                continue
            key = day.isoformat()
            record = by_date.get(key)
            cost = record.cost if record else 0.0
            tokens = record.tokens if record else 0
            cells.append(HeatmapCell(
                date=key,
                column=column,
                row=row,
                cost=cost,
                tokens=tokens,
                bucket=color_bucket(cost, stats.max_cost)
            ))

    return HeatmapLayout(
        as_of=as_of,
        grid_start=grid_start,
        weeks=grid.weeks,
        cells=cells,
        month_labels=month_labels,
        stats=stats
    )


def _index_by_date(history: UsageHistory) -> Dict[str, DailyUsageRecord]:
    index = {}
    for record in history.records.values():
        key = canonical_date(record.date)
        if key is not None:
            index[key] = record
    return index
