"""
Unit tests for storage models.

Tests record validation and history ordering.
"""

from datetime import datetime, timezone

import pytest

from usage_heatmap.storage.models import DailyUsageRecord, UsageHistory


class TestDailyUsageRecord:
    """Test DailyUsageRecord validation."""

    def test_defaults(self):
        """Tokens and extra fields are optional."""
        record = DailyUsageRecord(date="2024-03-01", cost=1.5)
        assert record.tokens == 0
        assert record.extra == {}

    def test_negative_cost_raises_error(self):
        """Negative cost is rejected."""
        with pytest.raises(ValueError, match="cost cannot be negative"):
            DailyUsageRecord(date="2024-03-01", cost=-0.01)

    def test_negative_tokens_raises_error(self):
        """Negative token count is rejected."""
        with pytest.raises(ValueError, match="tokens cannot be negative"):
            DailyUsageRecord(date="2024-03-01", cost=1.0, tokens=-1)

    @pytest.mark.parametrize("cost", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_cost_raises_error(self, cost):
        """NaN and infinite costs are rejected."""
        with pytest.raises(ValueError, match="cost must be a finite number"):
            DailyUsageRecord(date="2024-03-01", cost=cost)

    def test_infinite_tokens_raises_error(self):
        """Infinite token count is rejected."""
        with pytest.raises(ValueError, match="tokens must be a finite number"):
            DailyUsageRecord(date="2024-03-01", cost=1.0, tokens=float("inf"))

    def test_records_are_immutable(self):
        """Records cannot be modified after creation."""
        record = DailyUsageRecord(date="2024-03-01", cost=1.0)
        with pytest.raises(AttributeError):
            record.cost = 2.0

    def test_records_are_hashable(self):
        """Records hash by date and values, ignoring extra fields."""
        first = DailyUsageRecord(date="2024-03-01", cost=1.0, tokens=5, extra={"models": ["a"]})
        second = DailyUsageRecord(date="2024-03-01", cost=1.0, tokens=5, extra={"models": ["b"]})
        assert hash(first) == hash(second)
        assert len({first, DailyUsageRecord(date="2024-03-02", cost=1.0)}) == 2


class TestUsageHistory:
    """Test UsageHistory helpers."""

    def test_empty_history(self):
        """Empty history has no records and no timestamp."""
        history = UsageHistory.empty()
        assert len(history) == 0
        assert history.daily == []
        assert history.last_updated is None

    def test_daily_is_sorted_regardless_of_insertion_order(self):
        """daily recomputes ascending order instead of trusting the mapping."""
        history = UsageHistory(
            records={
                "2024-03-02": DailyUsageRecord(date="2024-03-02", cost=2.0),
                "2023-12-31": DailyUsageRecord(date="2023-12-31", cost=3.0),
                "2024-03-01": DailyUsageRecord(date="2024-03-01", cost=1.0),
            },
            last_updated=datetime(2024, 3, 2, tzinfo=timezone.utc)
        )
        assert [r.date for r in history.daily] == ["2023-12-31", "2024-03-01", "2024-03-02"]

    def test_history_is_hashable(self):
        """A history can be hashed despite holding a records mapping."""
        history = UsageHistory(
            records={"2024-03-01": DailyUsageRecord(date="2024-03-01", cost=1.0)},
            last_updated=datetime(2024, 3, 2, tzinfo=timezone.utc)
        )
        assert hash(history) == hash(UsageHistory(records={}, last_updated=history.last_updated))
