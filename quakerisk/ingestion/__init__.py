"""
ingestion — Outbound data sources.

Sub-modules:
    usgs_client  — USGS FDSN event catalog queries
    geocoder     — free-text location lookup (Nominatim)
"""
