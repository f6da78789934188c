"""
analysis — Seismic history analysis.

Sub-modules:
    models  — immutable records for events and analysis results
    engine  — the pure analysis function
    series  — chart-ready series derived from a result
"""
