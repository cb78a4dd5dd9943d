"""
Visualization package - Plotting tools for sweep results.

Contains:
- Metric heatmaps over loss and corruption probability
"""

from .heatmap import SweepHeatmap, METRIC_LABELS

__all__ = [
    'SweepHeatmap',
    'METRIC_LABELS'
]
