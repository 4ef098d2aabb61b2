"""Render orchestration and Flask view functions."""
