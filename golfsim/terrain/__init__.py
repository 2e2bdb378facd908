"""Terrain analysis and wind history."""
