"""
Configuration for Usage Heatmap.
"""
