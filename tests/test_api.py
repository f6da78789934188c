"""
HTTP API tests.

Outbound clients are replaced through ``app.dependency_overrides`` with
instances backed by ``httpx.MockTransport``.

Run with:
    pytest tests/test_api.py -v
"""

from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from quakerisk.api.deps import get_catalog_client, get_geocoder
from quakerisk.api.schemas import TimeRange
from quakerisk.ingestion.geocoder import NominatimGeocoder
from quakerisk.ingestion.usgs_client import USGSCatalogClient
from quakerisk.main import app


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════

def _make_feature(eid: str, lat: float, lon: float, mag: float, depth: float = 10.0) -> dict:
    return {
        "type": "Feature",
        "id": eid,
        "properties": {
            "mag": mag,
            "place": "Near the reference point",
            "time": 1705276800000,
            "url": "",
            "sig": 100,
        },
        "geometry": {"type": "Point", "coordinates": [lon, lat, depth]},
    }


def _override_catalog(handler):
    async def dependency():
        client = USGSCatalogClient(transport=httpx.MockTransport(handler), retry_backoff=0)
        try:
            yield client
        finally:
            await client.close()
    app.dependency_overrides[get_catalog_client] = dependency


def _override_geocoder(handler):
    async def dependency():
        geocoder = NominatimGeocoder(transport=httpx.MockTransport(handler), retry_backoff=0)
        try:
            yield geocoder
        finally:
            await geocoder.close()
    app.dependency_overrides[get_geocoder] = dependency


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


SINGLE_EVENT = {
    "id": "us7000abcd",
    "magnitude": 7.5,
    "place": "Marmara Sea",
    "time": "2024-01-15T00:00:00.000Z",
    "coordinates": {"longitude": 29.0, "latitude": 41.0, "depth": 10.0},
    "url": "",
    "significance": 900,
}


# ═══════════════════════════════════════════════════════════════════════════
# Service endpoints
# ═══════════════════════════════════════════════════════════════════════════

class TestServiceEndpoints:
    def test_liveness(self, client):
        resp = client.get("/health/live")
        assert resp.status_code == 200
        assert resp.json() == {"status": "alive"}

    def test_root(self, client):
        body = client.get("/").json()
        assert "risk-analysis" in body["modules"]

    def test_request_id_header(self, client):
        resp = client.get("/api/v1/earthquakes/options", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"
        assert "X-Process-Time" in resp.headers

    def test_request_id_generated(self, client):
        first = client.get("/health/live").headers["X-Request-ID"]
        second = client.get("/health/live").headers["X-Request-ID"]
        assert len(first) == 16
        assert first != second

    def test_options(self, client):
        body = client.get("/api/v1/earthquakes/options").json()
        assert body["timeRange"] == ["1month", "6months", "1year", "5years", "10years"]
        assert body["defaults"]["radius"] == 200.0


# ═══════════════════════════════════════════════════════════════════════════
# Analyze
# ═══════════════════════════════════════════════════════════════════════════

class TestAnalyzeEndpoint:
    def test_single_event(self, client):
        resp = client.post("/api/v1/earthquakes/analyze", json={
            "earthquakes": [SINGLE_EVENT],
            "location": {"lat": 41.0, "lon": 29.0},
            "analysisType": "comprehensive",
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["riskAssessment"]["overallRiskScore"] == 68
        assert body["riskAssessment"]["riskLevel"] == "Moderate"
        assert "Close proximity to seismic activity" in body["riskAssessment"]["factors"]
        assert body["spatialAnalysis"]["averageDistance"] == 0
        assert body["depthAnalysis"]["shallow"] == 1
        assert body["magnitudeAnalysis"]["distribution"] == {"7.5": 1}
        assert body["probabilityAnalysis"]["next5Years"]["high"] == 50

    def test_empty_list(self, client):
        resp = client.post("/api/v1/earthquakes/analyze", json={
            "earthquakes": [],
            "location": {"lat": 41.0, "lon": 29.0},
        })
        assert resp.status_code == 200
        body = resp.json()
        assert body["riskAssessment"]["overallRiskScore"] == 0
        assert body["riskAssessment"]["riskLevel"] == "Very Low"
        assert len(body["recommendations"]) == 3

    def test_sparse_event_defaulted(self, client):
        resp = client.post("/api/v1/earthquakes/analyze", json={
            "earthquakes": [{"coordinates": {"longitude": 29.0, "latitude": 41.0}}],
            "location": {"lat": 41.0, "lon": 29.0},
        })
        assert resp.status_code == 200
        assert resp.json()["magnitudeAnalysis"]["average"] == 0

    def test_missing_location(self, client):
        resp = client.post("/api/v1/earthquakes/analyze", json={"earthquakes": []})
        assert resp.status_code == 422

    def test_wrong_type(self, client):
        resp = client.post("/api/v1/earthquakes/analyze", json={
            "earthquakes": [{"magnitude": "strong", "coordinates": {"longitude": 0, "latitude": 0}}],
            "location": {"lat": 41.0, "lon": 29.0},
        })
        assert resp.status_code == 422

    def test_overflowing_numbers_defaulted(self, client):
        body = (
            '{"earthquakes": [{"magnitude": 1e400, "coordinates": '
            '{"longitude": 29.0, "latitude": 41.0, "depth": 1e400}}], '
            '"location": {"lat": 41.0, "lon": 29.0}}'
        )
        resp = client.post(
            "/api/v1/earthquakes/analyze",
            content=body,
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 200
        analysis = resp.json()
        assert analysis["magnitudeAnalysis"]["average"] == 0
        assert analysis["depthAnalysis"]["average"] == 0
        assert analysis["depthAnalysis"]["shallow"] == 1


# ═══════════════════════════════════════════════════════════════════════════
# Search
# ═══════════════════════════════════════════════════════════════════════════

class TestSearchEndpoint:
    def test_search(self, client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"features": [
                _make_feature("near", 41.05, 29.05, 3.1),
                _make_feature("far", 41.85, 29.85, 3.4),
            ]})

        _override_catalog(handler)
        resp = client.get("/api/v1/earthquakes", params={
            "lat": 41.0, "lon": 29.0,
            "startDate": "2020-01-01", "endDate": "2025-01-01",
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 1
        assert body["earthquakes"][0]["id"] == "near"
        assert body["query"]["radius"] == 100.0
        assert body["query"]["minMagnitude"] == 2.5
        assert requests[0].url.params["starttime"] == "2020-01-01"

    def test_reversed_dates(self, client):
        _override_catalog(lambda request: httpx.Response(200, json={"features": []}))
        resp = client.get("/api/v1/earthquakes", params={
            "lat": 41.0, "lon": 29.0,
            "startDate": "2025-01-01", "endDate": "2020-01-01",
        })
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_dates(self, client):
        resp = client.get("/api/v1/earthquakes", params={"lat": 41.0, "lon": 29.0})
        assert resp.status_code == 422

    def test_upstream_failure(self, client):
        _override_catalog(lambda request: httpx.Response(503))
        resp = client.get("/api/v1/earthquakes", params={
            "lat": 41.0, "lon": 29.0,
            "startDate": "2020-01-01", "endDate": "2025-01-01",
        })
        assert resp.status_code == 502
        error = resp.json()["error"]
        assert error["code"] == "EXTERNAL_SERVICE_ERROR"
        assert error["details"]["service"] == "USGS"


# ═══════════════════════════════════════════════════════════════════════════
# Report
# ═══════════════════════════════════════════════════════════════════════════

class TestReportEndpoint:
    def test_report_from_coordinates(self, client):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"features": [
                _make_feature("a", 41.0, 29.0, 4.6),
                _make_feature("b", 41.1, 29.0, 3.2),
            ]})

        _override_catalog(handler)
        resp = client.post("/api/v1/earthquakes/report", json={
            "location": "41.0,29.0",
            "filters": {"radius": 50.0, "minMagnitude": 3.0, "timeRange": "1year"},
        })

        assert resp.status_code == 200
        body = resp.json()
        assert body["location"]["source"] == "coordinates"
        assert body["query"]["radius"] == 50.0
        assert body["query"]["minMagnitude"] == 3.0
        assert len(body["earthquakes"]) == 2
        assert body["analysis"]["magnitudeAnalysis"]["total"] == 2
        assert body["charts"]["magnitude"] == [
            {"magnitude": 3.0, "count": 1},
            {"magnitude": 4.5, "count": 1},
        ]
        assert body["charts"]["temporal"] == [{"month": "2024-01", "count": 2}]

        today = datetime.now(timezone.utc).date()
        params = requests[0].url.params
        assert params["endtime"] == today.isoformat()
        assert params["starttime"] == TimeRange.ONE_YEAR.start_date(today).isoformat()
        assert params["minmagnitude"] == "3.0"

    def test_report_geocodes_place(self, client):
        _override_geocoder(lambda request: httpx.Response(200, json=[
            {"lat": "41.0", "lon": "29.0", "display_name": "Istanbul"},
        ]))
        _override_catalog(lambda request: httpx.Response(200, json={"features": []}))

        resp = client.post("/api/v1/earthquakes/report", json={"location": "Istanbul"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["location"]["displayName"] == "Istanbul"
        assert body["query"]["radius"] == 200.0
        assert body["analysis"]["riskAssessment"]["riskLevel"] == "Very Low"

    @pytest.mark.parametrize("filters", [
        {"radius": 75.0},
        {"minMagnitude": 5.0},
        {"timeRange": "2years"},
    ])
    def test_invalid_filter(self, client, filters):
        resp = client.post("/api/v1/earthquakes/report", json={
            "location": "41.0,29.0",
            "filters": filters,
        })
        assert resp.status_code == 422

    def test_unknown_place(self, client):
        _override_geocoder(lambda request: httpx.Response(200, json=[]))
        resp = client.post("/api/v1/earthquakes/report", json={"location": "Atlantis"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════════════
# Geocode
# ═══════════════════════════════════════════════════════════════════════════

class TestGeocodeEndpoint:
    def test_found(self, client):
        _override_geocoder(lambda request: httpx.Response(200, json=[
            {"lat": "35.6762", "lon": "139.6503", "display_name": "Tokyo, Japan"},
        ]))
        resp = client.get("/api/v1/geocode", params={"q": "Tokyo"})
        assert resp.status_code == 200
        assert resp.json() == {
            "lat": 35.6762,
            "lon": 139.6503,
            "displayName": "Tokyo, Japan",
            "source": "nominatim",
        }

    def test_not_found(self, client):
        _override_geocoder(lambda request: httpx.Response(200, json=[]))
        resp = client.get("/api/v1/geocode", params={"q": "Atlantis"})
        assert resp.status_code == 404
        assert resp.json()["error"]["details"]["query"] == "Atlantis"

    def test_invalid_literal(self, client):
        resp = client.get("/api/v1/geocode", params={"q": "123.0,10.0"})
        assert resp.status_code == 422
