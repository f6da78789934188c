"""
Chart-ready series derived from an AnalysisResult.

The front end plots the magnitude histogram as a bar chart and monthly
activity as a line chart; both need ordered points rather than the
unordered mappings of the wire result.
"""

from __future__ import annotations

from typing import Any, Dict, List

from quakerisk.analysis.models import AnalysisResult


def magnitude_series(result: AnalysisResult) -> List[Dict[str, Any]]:
    """Histogram bars sorted by magnitude, e.g. ``[{"magnitude": 2.5, "count": 4}]``."""
    distribution = result.magnitude_analysis.distribution
    if not distribution:
        return []
    points = [
        {"magnitude": float(label), "count": count}
        for label, count in distribution.items()
    ]
    return sorted(points, key=lambda p: p["magnitude"])


def temporal_series(result: AnalysisResult) -> List[Dict[str, Any]]:
    """Monthly counts sorted chronologically, e.g. ``[{"month": "2024-01", "count": 3}]``."""
    return [
        {"month": month, "count": count}
        for month, count in sorted(result.temporal_analysis.monthly_activity.items())
    ]


def chart_series(result: AnalysisResult) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "magnitude": magnitude_series(result),
        "temporal": temporal_series(result),
    }
