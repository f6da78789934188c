"""
FastAPI dependencies for the outbound clients.

Each request gets its own client, closed when the response is sent.
Tests swap them through ``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import AsyncIterator

from quakerisk.ingestion.geocoder import NominatimGeocoder
from quakerisk.ingestion.usgs_client import USGSCatalogClient


async def get_catalog_client() -> AsyncIterator[USGSCatalogClient]:
    client = USGSCatalogClient()
    try:
        yield client
    finally:
        await client.close()


async def get_geocoder() -> AsyncIterator[NominatimGeocoder]:
    geocoder = NominatimGeocoder()
    try:
        yield geocoder
    finally:
        await geocoder.close()
