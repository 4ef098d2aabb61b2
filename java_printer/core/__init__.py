"""Domain types, settings and shared helpers."""
