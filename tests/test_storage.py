"""
Unit tests for storage layer.

Tests history persistence, serialization and missing-history handling.
"""

import json
import os
import tempfile
from datetime import datetime, timezone

import pytest

from usage_heatmap.core.merger import merge_history
from usage_heatmap.storage.models import DailyUsageRecord, UsageHistory
from usage_heatmap.storage.repository import (
    HistoryRepository,
    history_from_dict,
    history_to_dict
)

UPDATED = datetime(2024, 3, 10, 8, 30, tzinfo=timezone.utc)


class TestSerialization:
    """Test conversion between histories and JSON documents."""

    def test_history_to_dict_is_ascending_list(self):
        """Records serialize as an ascending daily list."""
        history = UsageHistory(
            records={
                "2024-03-02": DailyUsageRecord(date="2024-03-02", cost=2.0, tokens=20),
                "2024-03-01": DailyUsageRecord(date="2024-03-01", cost=1.0, tokens=10,
                                               extra={"modelsUsed": ["m"]}),
            },
            last_updated=UPDATED
        )
        data = history_to_dict(history)

        assert data == {
            "daily": [
                {"date": "2024-03-01", "totalCost": 1.0, "totalTokens": 10, "modelsUsed": ["m"]},
                {"date": "2024-03-02", "totalCost": 2.0, "totalTokens": 20},
            ],
            "lastUpdated": "2024-03-10T08:30:00+00:00",
        }

    def test_empty_history_to_dict(self):
        """An empty history serializes with no timestamp."""
        assert history_to_dict(UsageHistory.empty()) == {"daily": [], "lastUpdated": None}

    def test_history_from_dict_accepts_legacy_fields(self):
        """Older files written straight from the usage tool still load."""
        data = {
            "daily": [
                {"date": "2024-03-02", "costUSD": 2.0},
                {"date": "2024-03-01", "totalCost": 1.0, "totalTokens": 10},
                {"date": "nonsense", "totalCost": 1.0},
            ],
            "lastUpdated": "2024-03-10T08:30:00.000Z",
        }
        history = history_from_dict(data)

        assert list(history.records) == ["2024-03-01", "2024-03-02"]
        assert history.records["2024-03-02"].cost == 2.0
        assert history.last_updated == UPDATED

    def test_history_from_dict_bad_timestamp(self):
        """An unparseable lastUpdated becomes None."""
        history = history_from_dict({"daily": [], "lastUpdated": "yesterday"})
        assert history.last_updated is None

    def test_history_from_dict_compact_offset_timestamp(self):
        """A "+HHMM" offset and a short fraction still parse as UTC."""
        history = history_from_dict({"daily": [], "lastUpdated": "2024-03-10T08:30:00.0+0000"})
        assert history.last_updated == UPDATED


class TestHistoryRepository:
    """Test the JSON file repository."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.temp_dir, "data", "usage_history.json")

    def teardown_method(self):
        """Clean up test environment."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_file_is_empty_history(self):
        """A missing file loads as an empty history."""
        history = HistoryRepository(self.path).load()
        assert history == UsageHistory.empty()

    def test_save_creates_directories_and_loads_back(self):
        """Saving creates parent directories and round-trips."""
        repository = HistoryRepository(self.path)
        merged = merge_history(
            UsageHistory.empty(),
            [
                DailyUsageRecord(date="2024-03-02", cost=2.0, tokens=20),
                DailyUsageRecord(date="2024-03-01", cost=1.0, tokens=10, extra={"inputTokens": 4}),
            ],
            now=UPDATED
        )

        repository.save(merged)
        loaded = repository.load()

        assert loaded.records == merged.records
        assert loaded.last_updated == UPDATED

    def test_saved_file_layout(self):
        """The saved file holds the daily list and lastUpdated."""
        repository = HistoryRepository(self.path)
        repository.save(merge_history(
            UsageHistory.empty(),
            [DailyUsageRecord(date="2024-03-05", cost=1.0), DailyUsageRecord(date="2024-03-04", cost=1.0)],
            now=UPDATED
        ))

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        assert [d["date"] for d in data["daily"]] == ["2024-03-04", "2024-03-05"]
        assert data["lastUpdated"] == "2024-03-10T08:30:00+00:00"

    def test_invalid_json_raises_error(self):
        """A corrupt file raises ValueError."""
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{not json")

        with pytest.raises(ValueError, match="Invalid JSON in history file"):
            HistoryRepository(self.path).load()

    def test_non_object_json_loads_empty(self):
        """A JSON document that is not an object loads empty."""
        os.makedirs(os.path.dirname(self.path))
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("[]")

        assert HistoryRepository(self.path).load() == UsageHistory.empty()
