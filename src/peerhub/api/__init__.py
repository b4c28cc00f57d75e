"""HTTP API for the community core."""
