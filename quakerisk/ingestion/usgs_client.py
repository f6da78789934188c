"""
usgs_client.py — Historical earthquake search via the USGS FDSN Event service.

Flow for one search:
    1. Convert (lat, lon, radius_km) into a rectangular box
       (radius / 111 degrees on each side)
    2. Query the catalog for the box, date range and magnitude floor
       (GeoJSON, at most 1000 events)
    3. Parse each GeoJSON feature, defaulting missing fields
    4. Drop events outside the true circular radius (Haversine)

USGS API Reference:
    https://earthquake.usgs.gov/fdsnws/event/1/
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from quakerisk.analysis.models import EarthquakeEvent
from quakerisk.core.config import settings
from quakerisk.ingestion.http import get_json
from quakerisk.spatial.radius_utils import (
    Coordinate,
    bounding_box,
    haversine_km,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "USGS"


# ═══════════════════════════════════════════════════════════════════════════
# Query & Result
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CatalogQuery:
    """Parameters of one catalog search."""
    latitude: float
    longitude: float
    start_date: date
    end_date: date
    radius_km: float = settings.DEFAULT_RADIUS_KM
    min_magnitude: float = settings.DEFAULT_MIN_MAGNITUDE

    def __post_init__(self) -> None:
        if self.radius_km <= 0:
            raise ValueError(f"Radius must be positive, got {self.radius_km}")
        if self.end_date < self.start_date:
            raise ValueError(
                f"End date {self.end_date} is before start date {self.start_date}"
            )

    @property
    def center(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.latitude,
            "lon": self.longitude,
            "radius": self.radius_km,
            "minMagnitude": self.min_magnitude,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
        }


@dataclass
class CatalogResult:
    """Events within the search radius plus the query that produced them."""
    query: CatalogQuery
    earthquakes: List[EarthquakeEvent] = field(default_factory=list)
    total_fetched: int = 0
    fetch_time_ms: float = 0.0

    @property
    def count(self) -> int:
        return len(self.earthquakes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "earthquakes": [eq.to_dict() for eq in self.earthquakes],
            "count": self.count,
            "query": self.query.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════════════════
# GeoJSON parsing
# ═══════════════════════════════════════════════════════════════════════════

def parse_usgs_feature(feature: Dict[str, Any]) -> Optional[EarthquakeEvent]:
    """
    Parse a single GeoJSON feature into an EarthquakeEvent.

    USGS GeoJSON format:
        feature = {
            "type": "Feature",
            "properties": { "mag": 5.2, "place": "...", "time": 1708617600000,
                            "url": "...", "sig": 416, ... },
            "geometry": { "type": "Point", "coordinates": [lon, lat, depth_km] },
            "id": "us7000m..."
        }

    Features without a usable epicentre are skipped (returns None).
    """
    try:
        props = feature.get("properties") or {}
        coords = (feature.get("geometry") or {}).get("coordinates") or []
        longitude = float(coords[0])
        latitude = float(coords[1])
    except (AttributeError, IndexError, TypeError, ValueError) as exc:
        logger.warning(
            "Skipping USGS feature %s without coordinates: %s",
            feature.get("id") if isinstance(feature, dict) else None, exc,
        )
        return None

    return EarthquakeEvent.from_dict({
        "id": feature.get("id"),
        "magnitude": props.get("mag"),
        "place": props.get("place"),
        "time": props.get("time"),
        "coordinates": {
            "longitude": longitude,
            "latitude": latitude,
            "depth": coords[2] if len(coords) > 2 else None,
        },
        "url": props.get("url"),
        "significance": props.get("sig"),
    })


# ═══════════════════════════════════════════════════════════════════════════
# Client
# ═══════════════════════════════════════════════════════════════════════════

class USGSCatalogClient:
    """
    Async client for the USGS FDSN event query endpoint.

    Usage:
        async with USGSCatalogClient() as client:
            result = await client.fetch(CatalogQuery(
                latitude=41.0, longitude=29.0,
                start_date=date(2020, 1, 1), end_date=date(2025, 1, 1),
            ))
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        result_limit: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.USGS_EVENT_URL
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.FETCH_MAX_RETRIES
        self.retry_backoff = (
            retry_backoff if retry_backoff is not None else settings.RETRY_BACKOFF
        )
        self.result_limit = result_limit or settings.USGS_RESULT_LIMIT
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self) -> "USGSCatalogClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def build_params(self, query: CatalogQuery) -> Dict[str, Any]:
        min_lat, max_lat, min_lon, max_lon = bounding_box(query.center, query.radius_km)
        return {
            "format": "geojson",
            "starttime": query.start_date.isoformat(),
            "endtime": query.end_date.isoformat(),
            "minlatitude": min_lat,
            "maxlatitude": max_lat,
            "minlongitude": min_lon,
            "maxlongitude": max_lon,
            "minmagnitude": query.min_magnitude,
            "limit": self.result_limit,
        }

    async def fetch(self, query: CatalogQuery) -> CatalogResult:
        """
        Run one catalog search and keep events inside the circular radius.

        Raises
        ------
        ExternalServiceError
            When USGS cannot be reached or keeps failing.
        """
        params = self.build_params(query)
        logger.info(
            "Fetching USGS catalog around (%.4f, %.4f) r=%.0fkm %s..%s M≥%.1f",
            query.latitude, query.longitude, query.radius_km,
            params["starttime"], params["endtime"], query.min_magnitude,
            extra={"lat": query.latitude, "lon": query.longitude,
                   "radius_km": query.radius_km},
        )

        start = time.monotonic()
        client = await self._get_client()
        data = await get_json(
            client,
            self.base_url,
            service=SERVICE_NAME,
            params=params,
            max_retries=self.max_retries,
            retry_backoff=self.retry_backoff,
        )

        features = (data.get("features") or []) if isinstance(data, dict) else []
        parsed = [parse_usgs_feature(feat) for feat in features]
        events = [eq for eq in parsed if eq is not None]

        nearby = [
            eq for eq in events
            if haversine_km(
                query.latitude, query.longitude,
                eq.coordinates.latitude, eq.coordinates.longitude,
            ) <= query.radius_km
        ]

        elapsed = (time.monotonic() - start) * 1000
        logger.info(
            "Found %d earthquakes within %.0fkm (%d fetched, %.0fms)",
            len(nearby), query.radius_km, len(events), elapsed,
            extra={"event_count": len(nearby), "duration_ms": elapsed},
        )

        return CatalogResult(
            query=query,
            earthquakes=nearby,
            total_fetched=len(events),
            fetch_time_ms=elapsed,
        )
