"""
FastAPI earthquake search & analysis endpoints.

Endpoints:
    GET  /api/v1/earthquakes          — Historical events around a point
    POST /api/v1/earthquakes/analyze  — Risk analysis of a set of events
    POST /api/v1/earthquakes/report   — Geocode → fetch → analyze in one call
    GET  /api/v1/earthquakes/options  — Allowed search filter values
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, Query

from quakerisk.analysis.engine import analyze
from quakerisk.analysis.models import ReferenceLocation
from quakerisk.analysis.series import chart_series
from quakerisk.api.deps import get_catalog_client, get_geocoder
from quakerisk.api.schemas import AnalyzeRequest, ReportRequest, filter_options
from quakerisk.core.config import settings
from quakerisk.core.errors import ValidationError
from quakerisk.ingestion.geocoder import NominatimGeocoder
from quakerisk.ingestion.usgs_client import CatalogQuery, USGSCatalogClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/earthquakes", tags=["earthquakes"])


@router.get("")
async def search_earthquakes(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude"),
    radius: float = Query(settings.DEFAULT_RADIUS_KM, gt=0, le=20000, description="Radius in km"),
    min_magnitude: float = Query(
        settings.DEFAULT_MIN_MAGNITUDE, ge=0, le=10, alias="minMagnitude",
    ),
    start_date: date = Query(..., alias="startDate", description="YYYY-MM-DD"),
    end_date: date = Query(..., alias="endDate", description="YYYY-MM-DD"),
    client: USGSCatalogClient = Depends(get_catalog_client),
):
    """
    Historical earthquakes within ``radius`` km of (lat, lon).

    Queries the USGS catalog for the surrounding box, then keeps only the
    events inside the true circular radius.
    """
    if end_date < start_date:
        raise ValidationError(
            "endDate must not be before startDate",
            field="endDate",
            start_date=start_date.isoformat(),
            end_date=end_date.isoformat(),
        )

    result = await client.fetch(CatalogQuery(
        latitude=lat,
        longitude=lon,
        radius_km=radius,
        min_magnitude=min_magnitude,
        start_date=start_date,
        end_date=end_date,
    ))
    return result.to_dict()


@router.post("/analyze")
async def analyze_earthquakes(req: AnalyzeRequest):
    """
    Compute the descriptive risk summary for the given events.

    Pure computation; nothing is fetched or stored.
    """
    events = [eq.to_event() for eq in req.earthquakes]
    result = analyze(events, req.location.to_reference())

    logger.info(
        "Analysed %d events: score=%d (%s)",
        len(events),
        result.risk_assessment.overall_risk_score,
        result.risk_assessment.risk_level.value,
        extra={
            "event_count": len(events),
            "risk_score": result.risk_assessment.overall_risk_score,
        },
    )
    return result.to_dict()


@router.post("/report")
async def earthquake_report(
    req: ReportRequest,
    geocoder: NominatimGeocoder = Depends(get_geocoder),
    client: USGSCatalogClient = Depends(get_catalog_client),
):
    """
    Full search pipeline for a free-text location.

    1. Geocode the location
    2. Turn the time range into start/end dates ending today (UTC)
    3. Fetch nearby events from USGS
    4. Analyse them and build chart series
    """
    place = await geocoder.geocode(req.location)

    end = datetime.now(timezone.utc).date()
    start = req.filters.time_range.start_date(end)

    catalog = await client.fetch(CatalogQuery(
        latitude=place.lat,
        longitude=place.lon,
        radius_km=req.filters.radius.value,
        min_magnitude=req.filters.min_magnitude.value,
        start_date=start,
        end_date=end,
    ))

    result = analyze(catalog.earthquakes, ReferenceLocation(place.lat, place.lon))

    return {
        "location": place.to_dict(),
        "query": catalog.query.to_dict(),
        "earthquakes": [eq.to_dict() for eq in catalog.earthquakes],
        "analysis": result.to_dict(),
        "charts": chart_series(result),
    }


@router.get("/options")
async def search_options():
    """Allowed radius, magnitude and time-range values."""
    return filter_options()
