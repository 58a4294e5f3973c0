"""
Repository pattern for data access.

Handles loading and saving the usage history JSON document.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from usage_heatmap.core.dates import parse_timestamp
from usage_heatmap.core.ingest import record_to_raw, records_from_payload

from .models import UsageHistory

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_PATH = "data/usage_history.json"


def history_to_dict(history: UsageHistory) -> Dict[str, Any]:
    """Serialize a history with records as an ascending list.

    Args:
        history: History to serialize

    Returns:
        JSON-compatible dictionary with ``daily`` and ``lastUpdated`` keys
    """
    return {
        "daily": [record_to_raw(record) for record in history.daily],
        "lastUpdated": history.last_updated.isoformat() if history.last_updated else None,
    }


def history_from_dict(data: Dict[str, Any]) -> UsageHistory:
    """Rebuild a history from its serialized form.

    Entries with unparseable dates or negative values are dropped; a
    duplicate date keeps the last entry.

    Args:
        data: Dictionary as produced by ``history_to_dict``

    Returns:
        UsageHistory keyed by canonical date
    """
    result = records_from_payload(data)
    records = {record.date: record for record in result.records}
    if result.dropped:
        logger.warning("Ignored %d malformed entries in stored history", result.dropped)

    return UsageHistory(
        records={key: records[key] for key in sorted(records)},
        last_updated=_parse_timestamp(data.get("lastUpdated") if isinstance(data, dict) else None)
    )


class HistoryRepository:
    """Repository for the persisted usage history.

    The history is stored as one JSON document and rewritten as a whole
    after each merge.
    """

    def __init__(self, path: str = DEFAULT_HISTORY_PATH):
        """Initialize the repository with a file path.

        Args:
            path: Path to the history JSON file
        """
        self.path = Path(path)

    def load(self) -> UsageHistory:
        """Load the stored history.

        Returns:
            Stored history, or an empty history if the file doesn't exist

        Raises:
            ValueError: If the file is not valid JSON
        """
        if not self.path.exists():
            logger.info("No history at %s, starting empty", self.path)
            return UsageHistory.empty()

        with open(self.path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in history file {self.path}: {e}")

        history = history_from_dict(data)
        logger.debug("Loaded %d days of history from %s", len(history), self.path)
        return history

    def save(self, history: UsageHistory) -> None:
        """Write the history, creating parent directories as needed.

        Args:
            history: History to persist
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(history_to_dict(history), f, indent=2)
            f.write("\n")
        logger.info("Saved %d days of history to %s", len(history), self.path)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
