"""Trend models over aggregated NYC shooting incident statistics."""

from .trend_models import (
    TrendFit,
    fit_linear_trend,
    fit_region_trends,
    project,
)

__all__ = [
    'TrendFit',
    'fit_linear_trend',
    'fit_region_trends',
    'project',
]
