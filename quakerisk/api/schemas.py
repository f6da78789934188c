"""
Pydantic schemas for the earthquake API.

Separated from the route handlers so they are reusable across the
codebase (route handlers, tests, scripts).
"""

from __future__ import annotations

import calendar
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from quakerisk.analysis.models import EarthquakeEvent, ReferenceLocation


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RadiusOption(float, Enum):
    """Search radius presets that mirror the frontend selector (km)."""
    KM_50  = 50.0
    KM_100 = 100.0
    KM_200 = 200.0
    KM_500 = 500.0


class MagnitudeOption(float, Enum):
    """Minimum magnitude presets."""
    M2_0 = 2.0
    M2_5 = 2.5
    M3_0 = 3.0
    M4_0 = 4.0


class TimeRange(str, Enum):
    """How far back a search reaches from today."""
    ONE_MONTH  = "1month"
    SIX_MONTHS = "6months"
    ONE_YEAR   = "1year"
    FIVE_YEARS = "5years"
    TEN_YEARS  = "10years"

    @property
    def months(self) -> int:
        return _TIME_RANGE_MONTHS[self]

    def start_date(self, end: date) -> date:
        """
        Calendar-aware start of the range ending at ``end``.

        The day is clamped to the target month's length.

        >>> TimeRange.ONE_MONTH.start_date(date(2024, 3, 31))
        datetime.date(2024, 2, 29)
        >>> TimeRange.ONE_YEAR.start_date(date(2024, 2, 29))
        datetime.date(2023, 2, 28)
        """
        return shift_months(end, -self.months)


_TIME_RANGE_MONTHS = {
    TimeRange.ONE_MONTH: 1,
    TimeRange.SIX_MONTHS: 6,
    TimeRange.ONE_YEAR: 12,
    TimeRange.FIVE_YEARS: 60,
    TimeRange.TEN_YEARS: 120,
}


def shift_months(day: date, months: int) -> date:
    """Move ``day`` by whole calendar months, clamping to month end."""
    index = day.year * 12 + (day.month - 1) + months
    year, month_index = divmod(index, 12)
    month = month_index + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class SearchFilters(BaseModel):
    """Search form settings, validated against the allowed presets."""
    model_config = ConfigDict(populate_by_name=True)

    radius: RadiusOption = Field(
        default=RadiusOption.KM_200,
        description="Search radius in kilometers",
    )
    min_magnitude: MagnitudeOption = Field(
        default=MagnitudeOption.M2_0,
        alias="minMagnitude",
        description="Smallest magnitude to include",
    )
    time_range: TimeRange = Field(
        default=TimeRange.FIVE_YEARS,
        alias="timeRange",
        description="How far back to search",
    )


class LocationIn(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0, examples=[41.0082])
    lon: float = Field(..., ge=-180.0, le=180.0, examples=[28.9784])

    def to_reference(self) -> ReferenceLocation:
        return ReferenceLocation(lat=self.lat, lon=self.lon)


class CoordinatesIn(BaseModel):
    longitude: float
    latitude: float
    depth: Optional[float] = Field(None, description="Focal depth in km")


class EarthquakeIn(BaseModel):
    """
    One catalog event as the front end sends it back for analysis.

    Only the epicentre is required; other fields fall back to defaults.
    """
    id: Optional[str] = ""
    magnitude: Optional[float] = None
    place: Optional[str] = None
    time: Optional[Union[int, float, str]] = Field(
        None, description="ISO-8601 string or epoch milliseconds",
    )
    coordinates: CoordinatesIn
    url: Optional[str] = None
    significance: Optional[float] = None

    def to_event(self) -> EarthquakeEvent:
        return EarthquakeEvent.from_dict(self.model_dump())


class AnalyzeRequest(BaseModel):
    """Request body for POST /api/v1/earthquakes/analyze."""
    model_config = ConfigDict(populate_by_name=True)

    earthquakes: List[EarthquakeIn]
    location: LocationIn
    analysis_type: str = Field("comprehensive", alias="analysisType")


class ReportRequest(BaseModel):
    """Request body for POST /api/v1/earthquakes/report."""
    location: str = Field(
        ..., min_length=1, max_length=200,
        description="Place name or 'lat,lon'",
        examples=["Istanbul, Turkey", "41.0082,28.9784"],
    )
    filters: SearchFilters = Field(default_factory=SearchFilters)


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------

def filter_options() -> Dict[str, Any]:
    """Allowed filter tokens and their defaults, for the search form."""
    defaults = SearchFilters()
    return {
        "radius": [option.value for option in RadiusOption],
        "minMagnitude": [option.value for option in MagnitudeOption],
        "timeRange": [option.value for option in TimeRange],
        "defaults": defaults.model_dump(mode="json", by_alias=True),
    }
