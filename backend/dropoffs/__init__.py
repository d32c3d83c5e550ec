"""Recycling drop-off locator backed by PostGIS."""
