"""Polygon blockchain access."""
