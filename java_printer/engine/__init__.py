"""Rendering engine: archive reading, filtering, HTML, browser and PDF merging."""
