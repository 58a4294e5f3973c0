"""
Usage Heatmap.

Merges daily usage-metering records into a durable history and renders it
as a calendar-style contribution graph.
"""

__version__ = "0.1.0"
