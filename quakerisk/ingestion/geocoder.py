"""
geocoder.py — Free-text location lookup.

A query that is already a "lat,lon" pair (e.g. ``"41.0082,28.9784"``) is
parsed locally. Anything else goes to the OpenStreetMap Nominatim search
API and the first hit is used.

Nominatim usage policy requires an identifying User-Agent and at most one
request per second; the search form issues one lookup per submission.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from quakerisk.core.config import settings
from quakerisk.core.errors import ExternalServiceError, NotFoundError, ValidationError
from quakerisk.ingestion.http import get_json
from quakerisk.spatial.radius_utils import Coordinate

logger = logging.getLogger(__name__)

SERVICE_NAME = "Nominatim"

_LAT_LON_PATTERN = re.compile(
    r"^\s*([-+]?\d+(?:\.\d+)?)\s*,\s*([-+]?\d+(?:\.\d+)?)\s*$"
)


@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lon: float
    display_name: str
    source: str = "nominatim"  # nominatim | coordinates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lat": self.lat,
            "lon": self.lon,
            "displayName": self.display_name,
            "source": self.source,
        }


def parse_coordinates(query: str) -> Optional[GeocodeResult]:
    """
    Interpret ``"lat,lon"`` input without a network call.

    >>> parse_coordinates("41.0082, 28.9784").lat
    41.0082
    >>> parse_coordinates("Istanbul") is None
    True
    """
    match = _LAT_LON_PATTERN.match(query)
    if not match:
        return None

    lat, lon = float(match.group(1)), float(match.group(2))
    try:
        Coordinate(lat, lon)
    except ValueError as exc:
        raise ValidationError(str(exc), field="location") from exc

    return GeocodeResult(
        lat=lat,
        lon=lon,
        display_name=f"{lat}, {lon}",
        source="coordinates",
    )


class NominatimGeocoder:
    """Async Nominatim search client."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_backoff: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or settings.NOMINATIM_URL
        self.user_agent = user_agent or settings.GEOCODER_USER_AGENT
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.FETCH_MAX_RETRIES
        self.retry_backoff = (
            retry_backoff if retry_backoff is not None else settings.RETRY_BACKOFF
        )
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": self.user_agent},
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    async def __aenter__(self) -> "NominatimGeocoder":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def geocode(self, query: str) -> GeocodeResult:
        """
        Resolve ``query`` to a single point.

        Raises
        ------
        ValidationError
            Blank query, or out-of-range literal coordinates.
        NotFoundError
            Nominatim has no match.
        ExternalServiceError
            Nominatim is unreachable or returned an unusable answer.
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Location query must not be empty", field="location")

        literal = parse_coordinates(query)
        if literal is not None:
            return literal

        client = await self._get_client()
        hits = await get_json(
            client,
            self.base_url,
            service=SERVICE_NAME,
            params={"format": "json", "q": query, "limit": 1},
            max_retries=self.max_retries,
            retry_backoff=self.retry_backoff,
        )

        if not hits:
            logger.info("No geocoding match for %r", query)
            raise NotFoundError("Location", query=query)

        try:
            best = hits[0]
            result = GeocodeResult(
                lat=float(best["lat"]),
                lon=float(best["lon"]),
                display_name=str(best.get("display_name") or query),
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ExternalServiceError(
                SERVICE_NAME, f"Unexpected response shape: {exc}"
            ) from exc

        logger.info(
            "Geocoded %r → (%.4f, %.4f)", query, result.lat, result.lon,
            extra={"lat": result.lat, "lon": result.lon},
        )
        return result
