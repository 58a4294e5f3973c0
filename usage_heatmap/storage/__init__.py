"""
Storage layer for Usage Heatmap.

Holds the history data model and its JSON persistence.
"""
