"""
Command-line interface for Usage Heatmap.
"""
