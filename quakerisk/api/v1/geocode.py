"""
FastAPI geocoding endpoint.

Endpoints:
    GET /api/v1/geocode?q=...  — Resolve a place name or "lat,lon" to a point
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from quakerisk.api.deps import get_geocoder
from quakerisk.ingestion.geocoder import NominatimGeocoder

router = APIRouter(prefix="/api/v1/geocode", tags=["geocoding"])


@router.get("")
async def geocode(
    q: str = Query(..., min_length=1, max_length=200, description="Place name or 'lat,lon'"),
    geocoder: NominatimGeocoder = Depends(get_geocoder),
):
    result = await geocoder.geocode(q)
    return result.to_dict()
