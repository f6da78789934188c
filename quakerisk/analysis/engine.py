"""
engine.py — Descriptive seismic-history analysis around a location.

Takes the earthquakes a catalog query returned for a search area plus the
searched point, and derives:
    • Magnitude statistics and a 0.5-wide magnitude histogram
    • Monthly activity
    • Epicentral distances from the searched point (Haversine)
    • Depth statistics with seismological depth classes
    • A heuristic 0–100 risk score, risk band and confidence
    • Naive recurrence-based probabilities
    • Canned preparedness recommendations

The function is pure: no I/O, no shared state, deterministic for a given
input. Every division is guarded so an empty event list yields zeros.

═══════════════════════════════════════════════════════════════════════════
RISK SCORE
═══════════════════════════════════════════════════════════════════════════

    score = round( min(30, N / 2)              activity
                 + min(25, M̄ × 5)              average magnitude
                 + min(25, M_max × 3)          strongest event
                 + max(0, 20 − D̄ / 10) )       proximity (D̄ in km)

Each term is clamped at zero before summing; the total is capped at 100.
M̄ and D̄ are the one-decimal averages reported in the result.

    score ≥ 70 → High      score ≥ 50 → Moderate
    score ≥ 30 → Low       otherwise  → Very Low

═══════════════════════════════════════════════════════════════════════════
PROBABILITIES
═══════════════════════════════════════════════════════════════════════════

The observed monthly rate of events above a magnitude threshold is
extrapolated over the horizon and capped:

    P = min(cap, N(M ≥ T) / months_with_activity × horizon_months)

This is a rate, not a probability in any rigorous sense. It is kept as a
simple indicator for the front end.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from quakerisk.analysis.models import (
    AnalysisResult,
    DepthAnalysis,
    EarthquakeEvent,
    MagnitudeAnalysis,
    NextFiveYearsProbability,
    NextYearProbability,
    ProbabilityAnalysis,
    ReferenceLocation,
    RiskAssessment,
    RiskLevel,
    SpatialAnalysis,
    TemporalAnalysis,
    round_half_up,
)
from quakerisk.spatial.radius_utils import haversine_km

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Constants
# ═══════════════════════════════════════════════════════════════════════════

# Depth classes (km)
SHALLOW_MAX_DEPTH_KM = 70.0       # shallow:      depth < 70
DEEP_MIN_DEPTH_KM = 300.0         # intermediate: 70 ≤ depth < 300, deep: ≥ 300

# Risk score caps
ACTIVITY_POINTS_MAX = 30.0
AVG_MAGNITUDE_POINTS_MAX = 25.0
MAX_MAGNITUDE_POINTS_MAX = 25.0
PROXIMITY_POINTS_MAX = 20.0
RISK_SCORE_MAX = 100

# Risk band lower bounds, highest first
RISK_LEVEL_THRESHOLDS: Tuple[Tuple[int, RiskLevel], ...] = (
    (70, RiskLevel.HIGH),
    (50, RiskLevel.MODERATE),
    (30, RiskLevel.LOW),
)

# Confidence saturates at 100 events and 120 months (10 years)
CONFIDENCE_FULL_EVENT_COUNT = 100.0
CONFIDENCE_FULL_MONTHS = 120.0

# Recommendation triggers
SHALLOW_DAMAGE_DEPTH_KM = 50.0
BUILDING_CODE_MAGNITUDE = 5.0

LOW_ACTIVITY_FACTOR = "Low historical seismic activity"


@dataclass(frozen=True)
class ProbabilityRule:
    """Extrapolate the monthly rate of M ≥ threshold events over a horizon."""
    threshold: float
    horizon_months: int
    cap: float


NEXT_YEAR_LOW = ProbabilityRule(threshold=3.0, horizon_months=12, cap=95.0)
NEXT_YEAR_MODERATE = ProbabilityRule(threshold=5.0, horizon_months=12, cap=75.0)
NEXT_YEAR_HIGH = ProbabilityRule(threshold=7.0, horizon_months=12, cap=25.0)
NEXT_5_YEARS_MODERATE = ProbabilityRule(threshold=5.0, horizon_months=60, cap=90.0)
NEXT_5_YEARS_HIGH = ProbabilityRule(threshold=7.0, horizon_months=60, cap=50.0)


RECOMMENDATIONS_BY_LEVEL: Dict[RiskLevel, Tuple[str, ...]] = {
    RiskLevel.HIGH: (
        "Consider earthquake insurance for your property",
        "Prepare an emergency kit with supplies for at least 72 hours",
        "Secure heavy furniture and appliances to walls",
        "Identify safe spots in each room (under sturdy tables, away from windows)",
        "Practice earthquake drills with your family",
    ),
    RiskLevel.MODERATE: (
        "Prepare a basic emergency kit",
        "Secure tall furniture and heavy objects",
        "Learn earthquake safety procedures",
        "Consider earthquake insurance",
    ),
}

MINIMAL_RECOMMENDATIONS: Tuple[str, ...] = (
    "Stay informed about earthquake preparedness",
    "Keep a small emergency kit at home",
    "Know how to turn off utilities in case of emergency",
)


# ═══════════════════════════════════════════════════════════════════════════
# Rule tables
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RiskContext:
    """The figures the risk-factor rules look at."""
    event_count: int
    average_magnitude: float
    max_magnitude: float
    closest_distance_km: Optional[float]  # None when there are no events


RiskFactorRule = Tuple[Callable[[RiskContext], bool], str]

# Evaluated in order; each message is added when its predicate holds.
RISK_FACTOR_RULES: Tuple[RiskFactorRule, ...] = (
    (lambda ctx: ctx.event_count > 50,
     "High historical seismic activity"),
    (lambda ctx: ctx.average_magnitude > 4.0,
     "Significant average magnitude"),
    (lambda ctx: ctx.closest_distance_km is not None and ctx.closest_distance_km < 20.0,
     "Close proximity to seismic activity"),
    (lambda ctx: ctx.max_magnitude > 6.0,
     "History of strong earthquakes"),
)

RecommendationRule = Tuple[Callable[[EarthquakeEvent], bool], str]

# Appended after the level checklist when any event matches.
EVENT_RECOMMENDATION_RULES: Tuple[RecommendationRule, ...] = (
    (lambda eq: eq.depth < SHALLOW_DAMAGE_DEPTH_KM,
     "Be aware that shallow earthquakes can cause more surface damage"),
    (lambda eq: eq.magnitude > BUILDING_CODE_MAGNITUDE,
     "Review building codes and structural safety in your area"),
)


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════

def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def magnitude_bucket(magnitude: float) -> float:
    """
    Lower 0.5 step of a magnitude.

    >>> magnitude_bucket(4.7)
    4.5
    >>> magnitude_bucket(3.0)
    3.0
    """
    return math.floor(magnitude * 2) / 2


def bucket_label(bucket: float) -> str:
    """Shortest decimal form of a bucket: 3.0 → "3", 3.5 → "3.5"."""
    return f"{bucket:g}"


def classify_depth_band(depth_km: float) -> str:
    """Return ``"shallow"``, ``"intermediate"`` or ``"deep"``."""
    if depth_km < SHALLOW_MAX_DEPTH_KM:
        return "shallow"
    if depth_km < DEEP_MIN_DEPTH_KM:
        return "intermediate"
    return "deep"


# ═══════════════════════════════════════════════════════════════════════════
# Sub-analyses
# ═══════════════════════════════════════════════════════════════════════════

def analyze_magnitudes(events: Sequence[EarthquakeEvent]) -> MagnitudeAnalysis:
    magnitudes = [eq.magnitude for eq in events]
    distribution: Counter = Counter(
        bucket_label(magnitude_bucket(m)) for m in magnitudes
    )

    return MagnitudeAnalysis(
        average=round_half_up(_mean(magnitudes), 1),
        range=(min(magnitudes), max(magnitudes)) if magnitudes else (0.0, 0.0),
        distribution=dict(distribution),
        total=len(magnitudes),
    )


def analyze_temporal(events: Sequence[EarthquakeEvent]) -> TemporalAnalysis:
    """
    Count events per UTC calendar month.

    ``total_period`` is the number of months that had at least one event,
    not the length of the searched date range.
    """
    monthly: Counter = Counter(eq.month_key for eq in events)
    months = len(monthly)

    return TemporalAnalysis(
        monthly_activity=dict(monthly),
        total_period=months,
        average_per_month=len(events) / max(months, 1),
    )


def event_distances(
    events: Sequence[EarthquakeEvent],
    reference: ReferenceLocation,
) -> List[float]:
    """Haversine distance in km from ``reference`` to every epicentre."""
    return [
        haversine_km(
            reference.lat, reference.lon,
            eq.coordinates.latitude, eq.coordinates.longitude,
        )
        for eq in events
    ]


def analyze_spatial(distances: Sequence[float]) -> SpatialAnalysis:
    if not distances:
        return SpatialAnalysis(0.0, 0.0, 0.0)

    return SpatialAnalysis(
        average_distance=round_half_up(_mean(distances), 1),
        closest_distance=round_half_up(min(distances), 1),
        farthest_distance=round_half_up(max(distances), 1),
    )


def analyze_depths(events: Sequence[EarthquakeEvent]) -> DepthAnalysis:
    depths = [eq.depth for eq in events]
    bands = Counter(classify_depth_band(d) for d in depths)

    return DepthAnalysis(
        average=round_half_up(_mean(depths), 1),
        shallow=bands["shallow"],
        intermediate=bands["intermediate"],
        deep=bands["deep"],
    )


# ═══════════════════════════════════════════════════════════════════════════
# Scoring
# ═══════════════════════════════════════════════════════════════════════════

def calculate_risk_score(
    event_count: int,
    magnitude: MagnitudeAnalysis,
    spatial: SpatialAnalysis,
) -> int:
    """
    Combine activity, magnitude and proximity into a 0–100 score.

    The proximity term only applies when there is at least one event, so an
    empty search scores 0.
    """
    activity = min(ACTIVITY_POINTS_MAX, event_count / 2)
    avg_magnitude = min(AVG_MAGNITUDE_POINTS_MAX, magnitude.average * 5)
    max_magnitude = min(MAX_MAGNITUDE_POINTS_MAX, magnitude.range[1] * 3)
    proximity = (
        PROXIMITY_POINTS_MAX - spatial.average_distance / 10
        if event_count else 0.0
    )

    terms = (activity, avg_magnitude, max_magnitude, proximity)
    total = sum(max(0.0, term) for term in terms)
    return min(RISK_SCORE_MAX, int(round_half_up(total)))


def classify_risk_level(score: int) -> RiskLevel:
    for lower_bound, level in RISK_LEVEL_THRESHOLDS:
        if score >= lower_bound:
            return level
    return RiskLevel.VERY_LOW


def calculate_confidence(event_count: int, months_of_data: int) -> float:
    """More events and a longer active period both raise confidence."""
    data_score = min(0.5, event_count / CONFIDENCE_FULL_EVENT_COUNT)
    time_score = min(0.5, months_of_data / CONFIDENCE_FULL_MONTHS)
    return min(1.0, data_score + time_score)


def assess_risk_factors(context: RiskContext) -> Tuple[str, ...]:
    factors = tuple(message for predicate, message in RISK_FACTOR_RULES if predicate(context))
    return factors or (LOW_ACTIVITY_FACTOR,)


def _extrapolate(
    events: Sequence[EarthquakeEvent],
    months: int,
    rule: ProbabilityRule,
) -> int:
    if months <= 0:
        return 0
    count = sum(1 for eq in events if eq.magnitude >= rule.threshold)
    rate = count / months * rule.horizon_months
    return int(round_half_up(min(rule.cap, max(0.0, rate))))


def estimate_probabilities(
    events: Sequence[EarthquakeEvent],
    months: int,
) -> ProbabilityAnalysis:
    return ProbabilityAnalysis(
        next_year=NextYearProbability(
            low=_extrapolate(events, months, NEXT_YEAR_LOW),
            moderate=_extrapolate(events, months, NEXT_YEAR_MODERATE),
            high=_extrapolate(events, months, NEXT_YEAR_HIGH),
        ),
        next_5_years=NextFiveYearsProbability(
            moderate=_extrapolate(events, months, NEXT_5_YEARS_MODERATE),
            high=_extrapolate(events, months, NEXT_5_YEARS_HIGH),
        ),
    )


def generate_recommendations(
    risk_level: RiskLevel,
    events: Sequence[EarthquakeEvent],
) -> Tuple[str, ...]:
    checklist = RECOMMENDATIONS_BY_LEVEL.get(risk_level, MINIMAL_RECOMMENDATIONS)
    notes = tuple(
        message for predicate, message in EVENT_RECOMMENDATION_RULES
        if any(predicate(eq) for eq in events)
    )
    return checklist + notes


# ═══════════════════════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════════════════════

def analyze(
    events: Sequence[EarthquakeEvent],
    reference: ReferenceLocation,
) -> AnalysisResult:
    """
    Derive the full descriptive summary for ``events`` around ``reference``.

    Parameters
    ----------
    events : sequence of EarthquakeEvent
        Catalog events, already limited to the search radius and magnitude
        floor. May be empty.
    reference : ReferenceLocation
        The searched point.

    Returns
    -------
    AnalysisResult

    Examples
    --------
    >>> result = analyze([], ReferenceLocation(41.0, 29.0))
    >>> result.risk_assessment.risk_level
    <RiskLevel.VERY_LOW: 'Very Low'>
    >>> result.risk_assessment.overall_risk_score
    0
    """
    magnitude = analyze_magnitudes(events)
    temporal = analyze_temporal(events)
    distances = event_distances(events, reference)
    spatial = analyze_spatial(distances)
    depth = analyze_depths(events)

    score = calculate_risk_score(len(events), magnitude, spatial)
    level = classify_risk_level(score)

    context = RiskContext(
        event_count=len(events),
        average_magnitude=magnitude.average,
        max_magnitude=magnitude.range[1],
        closest_distance_km=spatial.closest_distance if distances else None,
    )

    assessment = RiskAssessment(
        overall_risk_score=score,
        risk_level=level,
        confidence=calculate_confidence(len(events), temporal.total_period),
        factors=assess_risk_factors(context),
    )

    logger.debug(
        "Analysed %d events around (%.4f, %.4f): score=%d level=%s",
        len(events), reference.lat, reference.lon, score, level.value,
        extra={
            "event_count": len(events),
            "risk_score": score,
            "risk_level": level.value,
        },
    )

    return AnalysisResult(
        risk_assessment=assessment,
        temporal_analysis=temporal,
        magnitude_analysis=magnitude,
        spatial_analysis=spatial,
        depth_analysis=depth,
        probability_analysis=estimate_probabilities(events, temporal.total_period),
        recommendations=generate_recommendations(level, events),
    )
