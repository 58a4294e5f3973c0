"""
Windowed usage aggregation.

Summarizes the trailing window of a usage history into an immutable
statistics record used for the heatmap footer and color scale.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from functools import reduce

from usage_heatmap.storage.models import UsageHistory

from .dates import canonical_date

DEFAULT_WINDOW_DAYS = 366
DEFAULT_FALLBACK_MAX_COST = 10.0
TOKEN_UNITS = (("k", 1_000), ("M", 1_000_000), ("B", 1_000_000_000))


@dataclass(frozen=True)
class WindowStats:
    """Aggregate usage over the trailing window ending at ``window_end``."""
    total_cost: float
    total_tokens: int
    active_days: int
    max_cost: float
    window_start: date
    window_end: date

    def __post_init__(self):
        """Validate aggregates are reasonable."""
        if self.total_cost < 0:
            raise ValueError("total_cost cannot be negative")
        if self.total_tokens < 0:
            raise ValueError("total_tokens cannot be negative")
        if self.active_days < 0:
            raise ValueError("active_days cannot be negative")
        if self.max_cost <= 0:
            raise ValueError("max_cost must be > 0")
        if self.window_start > self.window_end:
            raise ValueError("window_start must be before window_end")


@dataclass(frozen=True)
class _Totals:
    cost: float = 0.0
    tokens: int = 0
    active_days: int = 0
    max_cost: float = 0.0


def _accumulate(totals: _Totals, record) -> _Totals:
    if record.cost <= 0:
        return totals
    return _Totals(
        cost=totals.cost + record.cost,
        tokens=totals.tokens + record.tokens,
        active_days=totals.active_days + 1,
        max_cost=max(totals.max_cost, record.cost)
    )


def compute_window_stats(
    history: UsageHistory,
    as_of: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
    fallback_max_cost: float = DEFAULT_FALLBACK_MAX_COST
) -> WindowStats:
    """Aggregate cost and tokens over the trailing window.

    Only days with ``cost > 0`` count as active and contribute to the
    totals; zero-cost days with tokens are ignored. Both window ends are
    inclusive. Records with unparseable dates are treated as absent.

    Args:
        history: Usage history to summarize
        as_of: Last day of the window
        window_days: Days between the window start and ``as_of``
        fallback_max_cost: Color scale maximum used when no day has cost

    Returns:
        WindowStats for the window
    """
    window_start = as_of - timedelta(days=window_days)
    start_key = window_start.isoformat()
    end_key = as_of.isoformat()

    in_window = []
    for record in history.records.values():
        key = canonical_date(record.date)
        if key is not None and start_key <= key <= end_key:
            in_window.append(record)

    totals = reduce(_accumulate, in_window, _Totals())

    return WindowStats(
        total_cost=totals.cost,
        total_tokens=totals.tokens,
        active_days=totals.active_days,
        max_cost=totals.max_cost if totals.max_cost > 0 else fallback_max_cost,
        window_start=window_start,
        window_end=as_of
    )


def format_tokens(count: int) -> str:
    """Format a token count compactly: 950, 1.5k, 2.3M, 4.0B.

    The suffix is picked after rounding, so 999,950 reads 1.0M rather
    than 1000.0k.
    """
    if count < 1_000:
        return str(int(count))
    for suffix, unit in TOKEN_UNITS:
        scaled = f"{count / unit:.1f}"
        if float(scaled) < 1_000 or suffix == TOKEN_UNITS[-1][0]:
            return f"{scaled}{suffix}"


def format_cost(amount: float) -> str:
    """Format currency with symbol and thousands separator."""
    return f"${amount:,.2f}"
