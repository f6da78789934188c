"""Spatial helpers: haversine distance and radius checks."""
