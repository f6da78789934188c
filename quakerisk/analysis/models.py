"""
Data structures shared by the analysis engine, the catalog client and the
API layer.

Earthquake events are parsed leniently: a missing or malformed field falls
back to a neutral default instead of rejecting the whole record. Analysis
results are immutable records whose ``to_dict()`` output is the JSON wire
contract consumed by the front end (camelCase keys).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

logger = logging.getLogger(__name__)


UNKNOWN_PLACE = "Unknown location"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
# Field-level defaulting
# ═══════════════════════════════════════════════════════════════════════════

def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Round ``value`` half away from zero on its exact binary value.

    Mirrors how the browser formats numbers (``toFixed``), so 0.25 becomes
    0.3 rather than Python's banker's 0.2.

    >>> round_half_up(2.25, 1)
    2.3
    >>> round_half_up(44.5)
    45.0
    """
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def _as_float(value: Any, name: str, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid %s %r, defaulting to %s", name, value, default)
        return default
    if not math.isfinite(result):
        logger.warning("Non-finite %s %r, defaulting to %s", name, value, default)
        return default
    return result


def _as_int(value: Any, name: str, default: int = 0) -> int:
    return int(_as_float(value, name, float(default)))


def parse_event_time(value: Any) -> datetime:
    """
    Normalise an event timestamp to an aware UTC datetime.

    Accepts datetimes (naive ones are taken as UTC), epoch milliseconds as
    the USGS feed reports them, and ISO-8601 strings including a trailing
    ``Z`` or a bare date. Anything else falls back to the Unix epoch.
    """
    if value is None or value == "":
        return EPOCH

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Out-of-range event time %r, defaulting to epoch", value)
            return EPOCH

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Unparseable event time %r, defaulting to epoch", value)
            return EPOCH
        return parse_event_time(parsed)

    logger.warning("Unsupported event time %r, defaulting to epoch", value)
    return EPOCH


def format_event_time(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. ``2024-01-15T00:00:00.000Z``."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


# ═══════════════════════════════════════════════════════════════════════════
# Input records
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EventCoordinates:
    longitude: float
    latitude: float
    depth: float = 0.0  # km

    def to_dict(self) -> Dict[str, float]:
        return {
            "longitude": self.longitude,
            "latitude": self.latitude,
            "depth": self.depth,
        }


@dataclass(frozen=True)
class EarthquakeEvent:
    """A single historical earthquake as returned by the catalog."""

    id: str
    magnitude: float
    place: str
    time: datetime
    coordinates: EventCoordinates
    significance: int = 0
    url: str = ""

    @property
    def depth(self) -> float:
        return self.coordinates.depth

    @property
    def month_key(self) -> str:
        """UTC ``YYYY-MM`` bucket of the event time."""
        return self.time.strftime("%Y-%m")

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "EarthquakeEvent":
        """
        Build an event from its wire form, defaulting missing fields.

        ``magnitude``, ``coordinates.depth`` and ``significance`` default to
        0, ``place`` to "Unknown location". Non-finite numbers count as
        malformed. A missing epicentre coordinate becomes 0 and is logged.
        """
        coords = raw.get("coordinates") or {}
        for axis in ("longitude", "latitude"):
            if coords.get(axis) is None:
                logger.warning(
                    "Event %r has no %s, placing it at 0", raw.get("id"), axis,
                )
        place = raw.get("place")
        return cls(
            id=str(raw.get("id") or ""),
            magnitude=_as_float(raw.get("magnitude"), "magnitude"),
            place=str(place) if place else UNKNOWN_PLACE,
            time=parse_event_time(raw.get("time")),
            coordinates=EventCoordinates(
                longitude=_as_float(coords.get("longitude"), "longitude"),
                latitude=_as_float(coords.get("latitude"), "latitude"),
                depth=_as_float(coords.get("depth"), "depth"),
            ),
            significance=max(0, _as_int(raw.get("significance"), "significance")),
            url=str(raw.get("url") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "magnitude": self.magnitude,
            "place": self.place,
            "time": format_event_time(self.time),
            "coordinates": self.coordinates.to_dict(),
            "url": self.url,
            "significance": self.significance,
        }


# ═══════════════════════════════════════════════════════════════════════════
# Result records
# ═══════════════════════════════════════════════════════════════════════════

class RiskLevel(str, Enum):
    """Heuristic risk band derived from the 0–100 score."""
    HIGH     = "High"
    MODERATE = "Moderate"
    LOW      = "Low"
    VERY_LOW = "Very Low"


@dataclass(frozen=True)
class RiskAssessment:
    overall_risk_score: int
    risk_level: RiskLevel
    confidence: float
    factors: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallRiskScore": self.overall_risk_score,
            "riskLevel": self.risk_level.value,
            "confidence": self.confidence,
            "factors": list(self.factors),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RiskAssessment":
        return cls(
            overall_risk_score=int(data["overallRiskScore"]),
            risk_level=RiskLevel(data["riskLevel"]),
            confidence=data["confidence"],
            factors=tuple(data["factors"]),
        )


@dataclass(frozen=True)
class TemporalAnalysis:
    monthly_activity: Dict[str, int]
    total_period: int
    average_per_month: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monthlyActivity": dict(self.monthly_activity),
            "totalPeriod": self.total_period,
            "averagePerMonth": self.average_per_month,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TemporalAnalysis":
        return cls(
            monthly_activity=dict(data["monthlyActivity"]),
            total_period=int(data["totalPeriod"]),
            average_per_month=data["averagePerMonth"],
        )


@dataclass(frozen=True)
class MagnitudeAnalysis:
    average: float
    range: Tuple[float, float]
    distribution: Dict[str, int]
    total: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average": self.average,
            "range": list(self.range),
            "distribution": dict(self.distribution),
            "total": self.total,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MagnitudeAnalysis":
        low, high = data["range"]
        return cls(
            average=data["average"],
            range=(low, high),
            distribution=dict(data["distribution"]),
            total=int(data["total"]),
        )


@dataclass(frozen=True)
class SpatialAnalysis:
    average_distance: float
    closest_distance: float
    farthest_distance: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "averageDistance": self.average_distance,
            "closestDistance": self.closest_distance,
            "farthestDistance": self.farthest_distance,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SpatialAnalysis":
        return cls(
            average_distance=data["averageDistance"],
            closest_distance=data["closestDistance"],
            farthest_distance=data["farthestDistance"],
        )


@dataclass(frozen=True)
class DepthAnalysis:
    average: float
    shallow: int
    intermediate: int
    deep: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average": self.average,
            "shallow": self.shallow,
            "intermediate": self.intermediate,
            "deep": self.deep,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DepthAnalysis":
        return cls(
            average=data["average"],
            shallow=int(data["shallow"]),
            intermediate=int(data["intermediate"]),
            deep=int(data["deep"]),
        )


@dataclass(frozen=True)
class NextYearProbability:
    low: int       # M ≥ 3
    moderate: int  # M ≥ 5
    high: int      # M ≥ 7


@dataclass(frozen=True)
class NextFiveYearsProbability:
    moderate: int  # M ≥ 5
    high: int      # M ≥ 7


@dataclass(frozen=True)
class ProbabilityAnalysis:
    next_year: NextYearProbability
    next_5_years: NextFiveYearsProbability

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nextYear": {
                "low": self.next_year.low,
                "moderate": self.next_year.moderate,
                "high": self.next_year.high,
            },
            "next5Years": {
                "moderate": self.next_5_years.moderate,
                "high": self.next_5_years.high,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProbabilityAnalysis":
        year = data["nextYear"]
        five = data["next5Years"]
        return cls(
            next_year=NextYearProbability(
                low=int(year["low"]),
                moderate=int(year["moderate"]),
                high=int(year["high"]),
            ),
            next_5_years=NextFiveYearsProbability(
                moderate=int(five["moderate"]),
                high=int(five["high"]),
            ),
        )


@dataclass(frozen=True)
class AnalysisResult:
    """Complete descriptive summary of the seismic history around a point."""

    risk_assessment: RiskAssessment
    temporal_analysis: TemporalAnalysis
    magnitude_analysis: MagnitudeAnalysis
    spatial_analysis: SpatialAnalysis
    depth_analysis: DepthAnalysis
    probability_analysis: ProbabilityAnalysis
    recommendations: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "riskAssessment": self.risk_assessment.to_dict(),
            "temporalAnalysis": self.temporal_analysis.to_dict(),
            "magnitudeAnalysis": self.magnitude_analysis.to_dict(),
            "spatialAnalysis": self.spatial_analysis.to_dict(),
            "depthAnalysis": self.depth_analysis.to_dict(),
            "probabilityAnalysis": self.probability_analysis.to_dict(),
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnalysisResult":
        return cls(
            risk_assessment=RiskAssessment.from_dict(data["riskAssessment"]),
            temporal_analysis=TemporalAnalysis.from_dict(data["temporalAnalysis"]),
            magnitude_analysis=MagnitudeAnalysis.from_dict(data["magnitudeAnalysis"]),
            spatial_analysis=SpatialAnalysis.from_dict(data["spatialAnalysis"]),
            depth_analysis=DepthAnalysis.from_dict(data["depthAnalysis"]),
            probability_analysis=ProbabilityAnalysis.from_dict(data["probabilityAnalysis"]),
            recommendations=tuple(data.get("recommendations", ())),
        )


@dataclass(frozen=True)
class ReferenceLocation:
    """The searched point, in decimal degrees."""
    lat: float
    lon: float

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}
