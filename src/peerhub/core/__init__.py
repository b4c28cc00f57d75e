"""Core configuration, error types and security helpers."""
