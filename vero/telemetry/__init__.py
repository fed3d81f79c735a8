"""Vero — telemetry."""
