"""Data access for the lifecycle store procedures."""
