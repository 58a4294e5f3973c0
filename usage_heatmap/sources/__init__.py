"""
External collaborators for Usage Heatmap.

Provides the usage fetcher and the git publisher.
"""

from .ccusage import UsageFetchError, fetch_usage
from .publish import PublishError, commit_and_push, pull

__all__ = ["UsageFetchError", "fetch_usage", "PublishError", "commit_and_push", "pull"]
