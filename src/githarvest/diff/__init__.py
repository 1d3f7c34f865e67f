"""Diff acquisition, reconstruction, and caching."""
