"""
Core modules for Usage Heatmap.

This package contains the core functionality for date normalization,
ingestion, history merging, window aggregation and heatmap rendering.
"""
